"""
skate.api.auth — Admin JWT issuance and introspection
=======================================================

Players have no login (identity is a client-supplied id).  Admin tokens
exist only to gate the override endpoints; they are minted offline with
``python -m skate mint-token <name>`` and sent as a Bearer header.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter

from skate.api.deps import JWT_ALGORITHM, JWT_SECRET, AdminDep

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

DEFAULT_TOKEN_TTL = timedelta(hours=12)


def issue_admin_token(
    sub: str,
    username: str | None = None,
    ttl: timedelta | None = DEFAULT_TOKEN_TTL,
) -> str:
    """Sign an admin JWT.  ``ttl=None`` issues a token without expiry."""
    payload: dict = {
        "sub": sub,
        "username": username or sub,
        "is_admin": True,
    }
    if ttl is not None:
        payload["exp"] = datetime.now(UTC) + ttl
    logger.info("Issued admin token for %s", sub)
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


@router.get("/me")
def me(admin: AdminDep):
    """Return the current authenticated admin's info."""
    return {
        "id": admin["sub"],
        "username": admin.get("username", "Unknown"),
        "is_admin": True,
    }
