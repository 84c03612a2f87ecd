"""
skate.services.expiry_service — Turn deadline enforcement
===========================================================

Expiry is enforced two ways:

- **On read** — :class:`ChallengeService` expires an overdue challenge
  the moment anyone loads it.
- **Periodic sweep** — :class:`ExpirySweeper` walks every active
  challenge on a timer so forfeits land even when nobody is looking.

The sweep itself is synchronous; the sweeper ships it to a worker
thread with :func:`run_db` so the event loop never blocks.
"""

from __future__ import annotations

import asyncio
import logging

from skate.database.engine import run_db
from skate.engine import rules
from skate.engine.records import ChallengeStatus
from skate.services.challenge_service import ChallengeService

logger = logging.getLogger(__name__)


def run_expiry_sweep(service: ChallengeService) -> dict[str, int]:
    """Expire every active challenge whose turn deadline has passed.

    A challenge that fails to expire is logged and skipped; the sweep moves
    on to the rest.  Returns a summary dict:
    ``{"checked": N, "expired": M, "failed": F}``.
    """
    now = service.now()
    checked = 0
    expired = 0
    failed = 0
    for challenge in service.store.list_challenges():
        if challenge.status != ChallengeStatus.ACTIVE:
            continue
        checked += 1
        if rules.check_expiry(challenge, now) is None:
            continue
        try:
            if service.expire_overdue(challenge.id).status == ChallengeStatus.EXPIRED:
                expired += 1
        except Exception:
            failed += 1
            logger.exception(
                "Expiry sweep could not expire challenge %s", challenge.id,
                extra={"task": "expiry"},
            )

    if expired:
        logger.info("Expiry sweep: %d of %d active challenges expired", expired, checked)
    if failed:
        logger.warning("Expiry sweep: %d challenges failed to expire", failed)
    return {"checked": checked, "expired": expired, "failed": failed}


class ExpirySweeper:
    """Runs :func:`run_expiry_sweep` every *interval* seconds on the event loop."""

    def __init__(self, service: ChallengeService, interval: float) -> None:
        self.service = service
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.interval <= 0:
            logger.info("Expiry sweeper disabled (interval=%s)", self.interval)
            return
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="expiry-sweeper")
        logger.info("Expiry sweeper started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await run_db(run_expiry_sweep, self.service)
            except Exception:
                logger.exception("Expiry sweep failed", extra={"task": "expiry"})
