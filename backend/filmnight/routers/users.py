"""User API routes: thin identity provisioning."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.models.event import Event
from filmnight.models.user import User
from filmnight.schemas.user import UserCreate, UserUpdate, UserOut
from filmnight.services import invitation_service
from filmnight.services.exceptions import ConflictError, ReferentialConstraintError
from filmnight.services.validation import normalize_email

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Provision a user and attach any invitations already sent to their email."""
    data = payload.model_dump()
    data["email"] = normalize_email(data["email"]) if data["email"] else None
    user = User(**data)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"User with email '{data['email']}' already exists")
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.role.value)
    invitation_service.link_user_invitations(db, user)
    return user


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    """List all users."""
    return db.query(User).order_by(User.created_at).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    """Update a user (partial update)."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("email"):
        updates["email"] = normalize_email(updates["email"])
    for field, value in updates.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"User with email '{updates.get('email')}' already exists")
    db.refresh(user)
    logger.info("Updated user %s", user_id)
    if "email" in updates:
        invitation_service.link_user_invitations(db, user)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, db: Session = Depends(get_db)):
    """Delete a user. Blocked while they are the creator of any event."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    created = db.query(Event).filter(Event.created_by_id == user_id).count()
    if created:
        raise ReferentialConstraintError(f"User {user_id} created {created} event(s) and cannot be deleted")
    # invitations.user_id and feature_requests.submitted_by_id are ON DELETE SET NULL
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)
