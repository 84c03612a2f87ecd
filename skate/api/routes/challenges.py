"""
skate.api.routes.challenges — Challenge and attempt endpoints
===============================================================

Handlers are thin: parse the body, call :class:`ChallengeService`, and
serialize the record.  Typed errors raised by the service are mapped to
HTTP responses by the handler registered in :mod:`skate.api.errors`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from skate.api.deps import ServiceDep
from skate.constants import DIFFICULTY_MAX, DIFFICULTY_MIN, TRICK_MAX_LENGTH
from skate.engine.errors import ValidationError
from skate.engine.records import CHALLENGE_JSON_FIELDS, ChallengeStatus

router = APIRouter(prefix="/challenges", tags=["challenges"])


# ---------------------------------------------------------------------------
# Pydantic schemas (camelCase on the wire)
# ---------------------------------------------------------------------------
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChallengeCreate(_CamelModel):
    creator_id: str = Field(min_length=1)
    trick: str = Field(min_length=1, max_length=TRICK_MAX_LENGTH)
    difficulty: int = Field(1, ge=DIFFICULTY_MIN, le=DIFFICULTY_MAX)
    buy_in: int = Field(0, ge=0)
    video_url: str | None = None
    video_thumbnail: str | None = None


class JoinRequest(_CamelModel):
    user_id: str = Field(min_length=1)


class AttemptCreate(_CamelModel):
    user_id: str = Field(min_length=1)
    landed: bool
    video_url: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _from_wire(body: dict[str, Any]) -> dict[str, Any]:
    """Translate camelCase PATCH keys to record attributes."""
    unknown = sorted(k for k in body if k not in CHALLENGE_JSON_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields {unknown}")
    return {CHALLENGE_JSON_FIELDS[k]: v for k, v in body.items()}


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------
@router.get("")
def list_challenges(
    service: ServiceDep,
    status: ChallengeStatus | None = Query(None),
):
    """All challenges in creation order, optionally filtered by status."""
    return [c.to_dict() for c in service.list_challenges(status=status)]


@router.get("/{challenge_id}")
def get_challenge(challenge_id: str, service: ServiceDep):
    return service.get_challenge(challenge_id).to_dict()


@router.post("", status_code=201)
def create_challenge(body: ChallengeCreate, service: ServiceDep):
    challenge = service.create_challenge(
        creator_id=body.creator_id,
        trick=body.trick,
        difficulty=body.difficulty,
        buy_in=body.buy_in,
        video_url=body.video_url,
        video_thumbnail=body.video_thumbnail,
    )
    return challenge.to_dict()


@router.patch("/{challenge_id}")
def patch_challenge(
    challenge_id: str,
    service: ServiceDep,
    body: dict[str, Any] = Body(...),
):
    """Edit media references, or stakes while still open."""
    return service.patch_challenge(challenge_id, _from_wire(body)).to_dict()


@router.post("/{challenge_id}/join")
def join_challenge(challenge_id: str, body: JoinRequest, service: ServiceDep):
    return service.join_challenge(challenge_id, body.user_id).to_dict()


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------
@router.get("/{challenge_id}/attempts")
def list_attempts(challenge_id: str, service: ServiceDep):
    return [a.to_dict() for a in service.list_attempts(challenge_id)]


@router.post("/{challenge_id}/attempts", status_code=201)
def create_attempt(challenge_id: str, body: AttemptCreate, service: ServiceDep):
    """The turn holder reports landing or missing the trick."""
    attempt, _ = service.record_attempt(
        challenge_id, body.user_id, body.landed, video_url=body.video_url
    )
    return attempt.to_dict()
