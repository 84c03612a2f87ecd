"""
skate.api.routes.users — Player roster endpoints
==================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from skate.api.deps import ServiceDep

router = APIRouter(prefix="/users", tags=["users"])


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)


@router.get("")
def list_users(service: ServiceDep):
    return [u.to_dict() for u in service.list_users()]


@router.post("", status_code=201)
def create_user(body: UserCreate, service: ServiceDep):
    return service.create_user(body.username).to_dict()


@router.get("/{user_id}/challenges")
def list_user_challenges(user_id: str, service: ServiceDep):
    """Challenges the user created or joined."""
    return [c.to_dict() for c in service.list_user_challenges(user_id)]
