"""
skate.api.routes.admin — Admin override endpoints (JWT‑protected)
===================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from skate.api.deps import AdminDep, ServiceDep
from skate.services import admin_service
from skate.services.expiry_service import run_expiry_sweep

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class LetterAward(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(min_length=1)
    reason: str | None = None


# ---------------------------------------------------------------------------
# Letter override
# ---------------------------------------------------------------------------
@router.post("/challenges/{challenge_id}/letters")
def award_letter(
    challenge_id: str,
    body: LetterAward,
    admin: AdminDep,
    service: ServiceDep,
):
    """Give a participant their next letter, bypassing the turn rules."""
    challenge, entry = admin_service.award_letter(
        service,
        challenge_id=challenge_id,
        user_id=body.user_id,
        actor_id=str(admin["sub"]),
        reason=body.reason,
    )
    return {"challenge": challenge.to_dict(), "audit": entry.to_dict()}


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------
@router.post("/expiry/sweep")
def sweep_expired(admin: AdminDep, service: ServiceDep):
    """Run the expiry sweep now instead of waiting for the timer."""
    return run_expiry_sweep(service)


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
@router.get("/audit")
def get_audit_log(
    admin: AdminDep,
    service: ServiceDep,
    limit: int = Query(100, ge=1, le=1000),
):
    entries = admin_service.list_audit(service, limit=limit)
    return {"entries": [e.to_dict() for e in entries], "total": len(entries)}
