"""
skate.services.admin_service — Audited admin overrides
========================================================

Demo and moderation shortcuts that bypass the turn rules live here and
nowhere else.  Every write follows the pattern:
  1. Snapshot the record the override rule sees ("before")
  2. Apply the override transition
  3. Commit the change and the audit entry (with "after") in one write
"""

from __future__ import annotations

import logging

from skate.engine import rules
from skate.engine.records import AuditEntry, Challenge
from skate.services.challenge_service import ChallengeService

logger = logging.getLogger(__name__)

AWARD_LETTER = "AWARD_LETTER"


def award_letter(
    service: ChallengeService,
    *,
    challenge_id: str,
    user_id: str,
    actor_id: str,
    reason: str | None = None,
) -> tuple[Challenge, AuditEntry]:
    """Give *user_id* their next letter, ignoring whose turn it is."""
    commit = service.transition(
        challenge_id,
        lambda current, now: rules.award_letter(current, user_id),
        audit={"actor_id": actor_id, "action": AWARD_LETTER, "reason": reason},
    )
    logger.warning(
        "Admin %s awarded a letter to %s on challenge %s (reason=%r)",
        actor_id, user_id, challenge_id, reason,
    )
    return commit.challenge, commit.audit


def list_audit(service: ChallengeService, limit: int = 100) -> list[AuditEntry]:
    return service.store.list_audit_entries(limit=limit)
