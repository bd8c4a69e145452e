"""Invitation / RSVP service.

Invariants:
- one invitation per (event, email), enforced by a unique index
- tokens are unguessable, globally unique and never change
- an RSVP overwrites status and rsvp_at in place; PENDING is never re-entered
- plus_ones is never negative
"""
import logging
import secrets
from collections import Counter
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filmnight.config import settings
from filmnight.models.event import Event
from filmnight.models.invitation import Invitation, InvitationStatus
from filmnight.models.user import User
from filmnight.services.exceptions import ConflictError, NotFoundError, ServiceError
from filmnight.services.transitions import check_invitation_transition, parse_invitation_status
from filmnight.services.validation import normalize_email, optional_text, require_non_negative
from filmnight.timeutils import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits of entropy


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def get_invitation(db: Session, invitation_id: str) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.invitation_id == invitation_id).first()
    if not invitation:
        raise NotFoundError("Invitation", invitation_id)
    return invitation


def get_invitation_by_token(db: Session, token: str) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.token == token).first()
    if not invitation:
        # Never echo the token back
        raise NotFoundError("Invitation", "for this token")
    return invitation


def find_invitation(db: Session, event_id: str, email: str) -> Optional[Invitation]:
    """Look up the existing invitation for an address (used to resend its link)."""
    return (
        db.query(Invitation)
        .filter(Invitation.event_id == event_id, Invitation.email == normalize_email(email))
        .first()
    )


def list_invitations(db: Session, event_id: Optional[str] = None) -> list[Invitation]:
    query = db.query(Invitation)
    if event_id:
        query = query.filter(Invitation.event_id == event_id)
    return query.order_by(Invitation.created_at.desc(), Invitation.email).all()


def invite(
    db: Session,
    event_id: str,
    email: str,
    invitee_name: Optional[str] = None,
    plus_ones: int = 0,
    note: Optional[str] = None,
) -> Invitation:
    """Create a PENDING invitation with a fresh token.

    A second invitation for the same (event, email) is a ConflictError; callers
    should fetch the existing one with ``find_invitation`` and resend its token.
    """
    email = normalize_email(email)
    require_non_negative(plus_ones, "plus_ones")
    invitee_name = optional_text(invitee_name, "invitee_name", max_length=120)
    note = optional_text(note, "note", max_length=500)

    if not db.query(Event).filter(Event.event_id == event_id).first():
        raise NotFoundError("Event", event_id)

    if find_invitation(db, event_id, email) is not None:
        raise ConflictError(f"{email} is already invited to this event")

    user = db.query(User).filter(User.email == email).first()

    # The unique indexes stay authoritative: a concurrent insert for the same
    # email surfaces here as an IntegrityError inside the savepoint.
    for attempt in range(1, settings.INVITE_TOKEN_ATTEMPTS + 1):
        invitation = Invitation(
            event_id=event_id,
            user_id=user.user_id if user else None,
            invitee_name=invitee_name,
            email=email,
            status=InvitationStatus.PENDING,
            token=generate_token(),
            plus_ones=plus_ones,
            note=note,
        )
        savepoint = db.begin_nested()
        db.add(invitation)
        try:
            savepoint.commit()
        except IntegrityError as e:
            savepoint.rollback()
            if find_invitation(db, event_id, email) is not None:
                db.rollback()
                raise ConflictError(f"{email} is already invited to this event")
            logger.warning("Invitation token collision on attempt %d: %s", attempt, e)
            continue
        db.commit()
        db.refresh(invitation)
        logger.info("Invited %s to event %s (%s)", email, event_id, invitation.invitation_id)
        return invitation

    db.rollback()
    raise ServiceError(f"Could not allocate a unique invitation token after {settings.INVITE_TOKEN_ATTEMPTS} attempts")


def _apply_rsvp(
    invitation: Invitation,
    status: Any,
    plus_ones: Optional[int],
    note: Optional[str],
) -> None:
    """Check the whole response before writing any of it."""
    target = parse_invitation_status(status)
    check_invitation_transition(invitation.status, target)
    changes = {"status": target}
    if plus_ones is not None:
        changes["plus_ones"] = require_non_negative(plus_ones, "plus_ones")
    if note is not None:
        changes["note"] = optional_text(note, "note", max_length=500)

    now = utcnow()
    changes["rsvp_at"] = now
    changes["updated_at"] = now
    for field, value in changes.items():
        setattr(invitation, field, value)


def rsvp(
    db: Session,
    token: str,
    status: Any,
    plus_ones: Optional[int] = None,
    note: Optional[str] = None,
) -> Invitation:
    """Record a guest's response via their token link.

    Repeating the same call rewrites the same values and refreshes rsvp_at.
    Omitted plus_ones/note keep their current values.
    """
    invitation = get_invitation_by_token(db, token)
    previous = invitation.status
    _apply_rsvp(invitation, status, plus_ones, note)
    db.commit()
    db.refresh(invitation)
    logger.info(
        "RSVP %s -> %s for invitation %s (plus_ones=%d)",
        previous.value, invitation.status.value, invitation.invitation_id, invitation.plus_ones,
    )
    return invitation


def rsvp_by_event_and_user(
    db: Session,
    event_id: str,
    user_id: str,
    status: Any,
    plus_ones: Optional[int] = None,
    note: Optional[str] = None,
) -> Invitation:
    """Authenticated RSVP: match by linked user, falling back to the user's email."""
    invitation = (
        db.query(Invitation)
        .filter(Invitation.event_id == event_id, Invitation.user_id == user_id)
        .first()
    )
    if invitation is None:
        user = db.query(User).filter(User.user_id == user_id).first()
        if user is None:
            raise NotFoundError("User", user_id)
        if user.email:
            invitation = (
                db.query(Invitation)
                .filter(Invitation.event_id == event_id, Invitation.email == user.email)
                .first()
            )
        if invitation is None:
            raise NotFoundError("Invitation", f"for user {user_id} in event {event_id}")

    previous = invitation.status
    _apply_rsvp(invitation, status, plus_ones, note)
    invitation.user_id = user_id
    db.commit()
    db.refresh(invitation)
    logger.info(
        "User %s RSVP %s -> %s for event %s",
        user_id, previous.value, invitation.status.value, event_id,
    )
    return invitation


def link_user_invitations(db: Session, user: User) -> int:
    """Attach unlinked invitations addressed to the user's email. Returns the count."""
    if not user.email:
        return 0
    invitations = (
        db.query(Invitation)
        .filter(Invitation.email == user.email, Invitation.user_id.is_(None))
        .all()
    )
    for invitation in invitations:
        invitation.user_id = user.user_id
    if invitations:
        db.commit()
        logger.info("Linked %d invitation(s) to user %s", len(invitations), user.user_id)
    return len(invitations)


def revoke_invitation(db: Session, invitation_id: str) -> None:
    invitation = get_invitation(db, invitation_id)
    db.delete(invitation)
    db.commit()
    logger.info("Revoked invitation %s (%s)", invitation_id, invitation.email)


def event_headcount(db: Session, event_id: str) -> dict[str, int]:
    """Per-status counts plus derived attendance numbers for one event."""
    if not db.query(Event).filter(Event.event_id == event_id).first():
        raise NotFoundError("Event", event_id)
    invitations = db.query(Invitation).filter(Invitation.event_id == event_id).all()
    counts = Counter(inv.status for inv in invitations)
    result = {status.value.lower(): counts.get(status, 0) for status in InvitationStatus}
    result["invited"] = len(invitations)
    result["attending"] = counts[InvitationStatus.ACCEPTED] + counts[InvitationStatus.MAYBE]
    result["expected_guests"] = sum(
        1 + inv.plus_ones for inv in invitations if inv.status == InvitationStatus.ACCEPTED
    )
    return result
