"""Request dependencies for the current actor.

Session issuance lives outside this service; the caller's identity arrives as
an ``X-User-Id`` header that has already been authenticated upstream.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.models.user import User, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def get_optional_actor(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[Actor]:
    """Resolve the actor if a user id was supplied; anonymous otherwise."""
    if not x_user_id:
        return None
    user = db.query(User).filter(User.user_id == x_user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return Actor(user_id=user.user_id, role=user.role, email=user.email)


def get_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return actor


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        logger.warning("User %s denied admin action", actor.user_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return actor
