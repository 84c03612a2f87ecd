"""
skate.client — HTTP client for the SKATE API
==============================================

A thin :mod:`httpx` wrapper with a per-client cache.  Nothing is shared
between client instances: each ``SkateClient`` owns its own
:class:`ChallengeCache`, and every mutating call replaces the cached
record with the server's response and drops the cached list, so the
next read reflects what the server actually committed.

Usage::

    from skate.client import SkateClient, format_buy_in

    with SkateClient("http://localhost:8000") as api:
        for c in api.list_challenges(status="open"):
            print(c["trick"], format_buy_in(c["buyIn"]))
        api.join_challenge(challenge_id, "user2")

Any ``httpx.Client`` works as transport, including FastAPI's
``TestClient``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from skate.constants import SKATE_WORD

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class SkateAPIError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str, kind: str | None = None) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.kind = kind


# ---------------------------------------------------------------------------
# Session-scoped cache
# ---------------------------------------------------------------------------
class ChallengeCache:
    """Challenge list, individual challenges and attempts for one session."""

    def __init__(self) -> None:
        self.challenge_list: list[dict] | None = None
        self.challenges: dict[str, dict] = {}
        self.attempts: dict[str, list[dict]] = {}

    def store_list(self, challenges: list[dict]) -> None:
        self.challenge_list = challenges
        for c in challenges:
            self.challenges[c["id"]] = c

    def store(self, challenge: dict) -> None:
        """Take the server's copy of one challenge; the list is now stale."""
        self.challenges[challenge["id"]] = challenge
        self.challenge_list = None

    def invalidate(self, challenge_id: str | None = None) -> None:
        if challenge_id is None:
            self.clear()
            return
        self.challenges.pop(challenge_id, None)
        self.attempts.pop(challenge_id, None)
        self.challenge_list = None

    def clear(self) -> None:
        self.challenge_list = None
        self.challenges.clear()
        self.attempts.clear()


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class SkateClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        http: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.cache = ChallengeCache()

    def __enter__(self) -> SkateClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.cache.clear()
        if self._owns_http:
            self.http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.http.request(method, f"/api{path}", **kwargs)
        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            message = body.get("detail") or resp.reason_phrase or "Request failed"
            logger.debug("%s %s → %d %s", method, path, resp.status_code, message)
            raise SkateAPIError(resp.status_code, str(message), body.get("error"))
        return resp.json()

    # -- Challenges ---------------------------------------------------------
    def list_challenges(self, *, status: str | None = None, refresh: bool = False) -> list[dict]:
        """All challenges, newest first.  Served from cache unless *refresh*."""
        if refresh or self.cache.challenge_list is None:
            self.cache.store_list(self._request("GET", "/challenges"))
        challenges = self.cache.challenge_list or []
        if status is not None:
            challenges = [c for c in challenges if c["status"] == status]
        return list(reversed(challenges))

    def get_challenge(self, challenge_id: str, *, refresh: bool = False) -> dict:
        cached = self.cache.challenges.get(challenge_id)
        if cached is not None and not refresh:
            return cached
        challenge = self._request("GET", f"/challenges/{challenge_id}")
        self.cache.challenges[challenge_id] = challenge
        return challenge

    def create_challenge(
        self,
        creator_id: str,
        trick: str,
        *,
        difficulty: int = 1,
        buy_in: int = 0,
        video_url: str | None = None,
        video_thumbnail: str | None = None,
    ) -> dict:
        challenge = self._request("POST", "/challenges", json={
            "creatorId": creator_id,
            "trick": trick,
            "difficulty": difficulty,
            "buyIn": buy_in,
            "videoUrl": video_url,
            "videoThumbnail": video_thumbnail,
        })
        self.cache.store(challenge)
        return challenge

    def update_challenge(self, challenge_id: str, **fields: Any) -> dict:
        """PATCH camelCase *fields* (media references, or stakes while open)."""
        challenge = self._request("PATCH", f"/challenges/{challenge_id}", json=fields)
        self.cache.store(challenge)
        return challenge

    def join_challenge(self, challenge_id: str, user_id: str) -> dict:
        try:
            challenge = self._request(
                "POST", f"/challenges/{challenge_id}/join", json={"userId": user_id}
            )
        except SkateAPIError:
            # Our copy is evidently out of date
            self.cache.invalidate(challenge_id)
            raise
        self.cache.store(challenge)
        return challenge

    # -- Attempts -----------------------------------------------------------
    def list_attempts(self, challenge_id: str, *, refresh: bool = False) -> list[dict]:
        if refresh or challenge_id not in self.cache.attempts:
            self.cache.attempts[challenge_id] = self._request(
                "GET", f"/challenges/{challenge_id}/attempts"
            )
        return self.cache.attempts[challenge_id]

    def record_attempt(
        self,
        challenge_id: str,
        user_id: str,
        landed: bool,
        *,
        video_url: str | None = None,
    ) -> dict:
        """Report the outcome of your turn.  The challenge is re-read after."""
        try:
            attempt = self._request(
                "POST",
                f"/challenges/{challenge_id}/attempts",
                json={"userId": user_id, "landed": landed, "videoUrl": video_url},
            )
        finally:
            self.cache.invalidate(challenge_id)
        return attempt

    # -- Users --------------------------------------------------------------
    def list_users(self) -> list[dict]:
        return self._request("GET", "/users")

    def usernames(self) -> dict[str, str]:
        return {u["id"]: u["username"] for u in self.list_users()}


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------
def format_buy_in(cents: int, symbol: str = "$") -> str:
    """Minor units → display string.  Zero is a free challenge."""
    if cents <= 0:
        return "Free"
    return f"{symbol}{cents / 100:.2f}"


def render_letters(letters: str, placeholder: str = "_") -> str:
    """``"SK"`` → ``"SK___"``."""
    return "".join(
        ch if i < len(letters) else placeholder
        for i, ch in enumerate(SKATE_WORD)
    )


def format_countdown(expires_at: datetime | str | None, now: datetime | None = None) -> str:
    """Time left as ``HH:MM:SS``; hours are not wrapped at 24."""
    if expires_at is None:
        return "--:--:--"
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)

    remaining = int((expires_at - now).total_seconds())
    if remaining <= 0:
        return "00:00:00"
    hours, rest = divmod(remaining, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
