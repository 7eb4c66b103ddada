# marketplace/api/deps.py
from fastapi import Depends, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.actor import Actor
from marketplace.domain.statuses import Role
from marketplace.repos.user_repo import UserRepo
from marketplace.services.lock_service import LockService


def get_actor(
    user_id: int = Query(..., gt=0, description="Authenticated user id (from the auth layer)"),
    role: Role = Query(Role.BUYER, description="Role claimed by callers without a user record"),
    db: Session = Depends(get_db),
) -> Actor:
    user = UserRepo(db).get_user(user_id)
    # a registered user's stored role overrides the claimed one
    if user:
        return Actor(user_id=user_id, role=Role(user.role))
    return Actor(user_id=user_id, role=role)


def get_lock_service() -> LockService:
    return LockService()
