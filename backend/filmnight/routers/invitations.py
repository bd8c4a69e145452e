"""Invitation API routes (admin side)."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.deps import Actor, require_admin
from filmnight.schemas.invitation import InvitationCreate, InvitationOut
from filmnight.services import event_service, invitation_service
from filmnight.services.exceptions import NotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=InvitationOut, status_code=status.HTTP_201_CREATED)
def create_invitation(
    payload: InvitationCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Invite an email address to an open event."""
    event_service.ensure_event_open(event_service.get_event(db, payload.event_id))
    return invitation_service.invite(db, **payload.model_dump())


@router.get("/", response_model=list[InvitationOut])
def list_invitations(
    event_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return invitation_service.list_invitations(db, event_id=event_id)


@router.get("/lookup", response_model=InvitationOut)
def lookup_invitation(
    event_id: str = Query(...),
    email: str = Query(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Find the existing invitation for an address so its link can be resent."""
    invitation = invitation_service.find_invitation(db, event_id, email)
    if invitation is None:
        raise NotFoundError("Invitation", f"for {email}")
    return invitation


@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_invitation(invitation_id: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    invitation_service.revoke_invitation(db, invitation_id)
