"""
skate.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError

from skate.config import SkateConfig, load_config
from skate.services.challenge_service import ChallengeService
from skate.services.store import ChallengeStore, MemoryChallengeStore

logger = logging.getLogger(__name__)

_WEAK_SECRETS = frozenset({
    "skate-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_config() -> SkateConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_store() -> ChallengeStore:
    """Build the configured store once per process and seed it if asked."""
    cfg = get_config()
    store: ChallengeStore
    if cfg.storage_backend == "sql":
        from skate.database.engine import create_db_engine, init_db
        from skate.services.sql_store import SqlChallengeStore

        engine = create_db_engine()
        init_db(engine)
        store = SqlChallengeStore(engine)
    else:
        store = MemoryChallengeStore()
    logger.info("Using %s challenge store", cfg.storage_backend)

    if cfg.seed_demo_data:
        from skate.services.seed import seed_demo_data

        seed_demo_data(store)
    return store


@lru_cache(maxsize=1)
def get_service() -> ChallengeService:
    return ChallengeService(get_store(), turn_window=get_config().turn_window)


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate JWT and return admin user payload. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return payload


ServiceDep = Annotated[ChallengeService, Depends(get_service)]
AdminDep = Annotated[dict, Depends(get_current_admin)]
