"""Token-based RSVP routes: no login, the token is the credential."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.schemas.event import EventFilmOut
from filmnight.schemas.invitation import InvitationWithEventOut, RSVPPayload
from filmnight.services import event_service, invitation_service, scheduler_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _with_event(db: Session, invitation) -> InvitationWithEventOut:
    """The invitation plus its event and the event's lineup in display order."""
    out = InvitationWithEventOut.model_validate(invitation)
    out.event.lineup = [
        EventFilmOut.model_validate(s) for s in scheduler_service.list_lineup(db, invitation.event_id)
    ]
    return out


@router.get("/{token}", response_model=InvitationWithEventOut)
def get_invitation(token: str, db: Session = Depends(get_db)):
    return _with_event(db, invitation_service.get_invitation_by_token(db, token))


@router.post("/{token}", response_model=InvitationWithEventOut)
def respond(token: str, payload: RSVPPayload, db: Session = Depends(get_db)):
    """Set or change the guest's RSVP."""
    invitation = invitation_service.get_invitation_by_token(db, token)
    event_service.ensure_event_open(invitation.event)
    invitation = invitation_service.rsvp(
        db, token, payload.status, plus_ones=payload.plus_ones, note=payload.note,
    )
    return _with_event(db, invitation)
