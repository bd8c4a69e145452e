"""Event API routes: delegates to the registry, scheduler and RSVP services."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.deps import Actor, get_actor, get_optional_actor, require_admin
from filmnight.schemas.event import (
    EventCreate, EventUpdate, EventOut, EventDetailOut, LineupItem,
    EventFilmCreate, EventFilmUpdate, EventFilmOut, HeadcountOut,
)
from filmnight.schemas.invitation import InvitationOut, RSVPPayload
from filmnight.services import event_service, invitation_service, scheduler_service
from filmnight.services.exceptions import NotFoundError
from filmnight.services.letterboxd import fetch_letterboxd_metadata

logger = logging.getLogger(__name__)
router = APIRouter()


def _visible_event(db: Session, slug: str, actor: Optional[Actor]):
    """Unpublished events are only visible to admins."""
    event = event_service.get_event_by_slug(db, slug)
    if not event.is_published and not (actor and actor.is_admin):
        raise NotFoundError("Event", slug)
    return event


def _detail(db: Session, event) -> EventDetailOut:
    out = EventDetailOut.model_validate(event)
    out.lineup = [EventFilmOut.model_validate(s) for s in scheduler_service.list_lineup(db, event.event_id)]
    return out


def _lineup_entries(items: Optional[list[LineupItem]]) -> Optional[list[dict]]:
    """Flatten lineup items for the service, filling blanks from Letterboxd on request."""
    if items is None:
        return None
    entries = []
    for item in items:
        entry = item.model_dump(exclude={"fetch_metadata"}, exclude_none=True)
        if item.fetch_metadata and item.reference_url:
            metadata = fetch_letterboxd_metadata(item.reference_url)
            if metadata:
                entry = {**metadata.as_film_fields(), **entry}
        entries.append(entry)
    return entries


@router.post("/", response_model=EventDetailOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Create a new event; the acting admin becomes its creator.

    An inline lineup and feature request links are saved with the event or not at all.
    """
    event = event_service.create_event(
        db,
        created_by_id=actor.user_id,
        lineup=_lineup_entries(payload.lineup),
        **payload.model_dump(exclude={"lineup"}),
    )
    return _detail(db, event)


@router.get("/", response_model=list[EventOut])
def list_events(
    include_unpublished: bool = Query(False),
    include_archived: bool = Query(False),
    db: Session = Depends(get_db),
    actor: Optional[Actor] = Depends(get_optional_actor),
):
    """List events by scheduled time. Drafts and archives are admin-only."""
    is_admin = bool(actor and actor.is_admin)
    return event_service.list_events(
        db,
        include_unpublished=include_unpublished and is_admin,
        include_archived=include_archived and is_admin,
    )


@router.get("/{slug}", response_model=EventDetailOut)
def get_event(slug: str, db: Session = Depends(get_db), actor: Optional[Actor] = Depends(get_optional_actor)):
    """Fetch a single event by slug with its lineup."""
    return _detail(db, _visible_event(db, slug, actor))


@router.patch("/{slug}", response_model=EventDetailOut)
def update_event(
    slug: str,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    event = event_service.get_event_by_slug(db, slug)
    updates = payload.model_dump(exclude_unset=True, exclude={"lineup"})
    if payload.lineup is not None:
        event_service.ensure_event_open(event)
        updates["lineup"] = _lineup_entries(payload.lineup)
    return _detail(db, event_service.update_event(db, event.event_id, updates))


@router.post("/{slug}/publish", response_model=EventOut)
def publish_event(slug: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    return event_service.publish_event(db, event_service.get_event_by_slug(db, slug).event_id)


@router.post("/{slug}/unpublish", response_model=EventOut)
def unpublish_event(slug: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    return event_service.unpublish_event(db, event_service.get_event_by_slug(db, slug).event_id)


@router.post("/{slug}/archive", response_model=EventOut)
def archive_event(slug: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    return event_service.archive_event(db, event_service.get_event_by_slug(db, slug).event_id)


@router.post("/{slug}/unarchive", response_model=EventOut)
def unarchive_event(slug: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    return event_service.unarchive_event(db, event_service.get_event_by_slug(db, slug).event_id)


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(slug: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    """Delete an event together with its lineup and invitations."""
    event_service.delete_event(db, event_service.get_event_by_slug(db, slug).event_id)


# --- lineup -----------------------------------------------------------------

@router.get("/{slug}/films", response_model=list[EventFilmOut])
def list_lineup(slug: str, db: Session = Depends(get_db), actor: Optional[Actor] = Depends(get_optional_actor)):
    event = _visible_event(db, slug, actor)
    return scheduler_service.list_lineup(db, event.event_id)


@router.post("/{slug}/films", response_model=EventFilmOut, status_code=status.HTTP_201_CREATED)
def add_film(
    slug: str,
    payload: EventFilmCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    event = event_service.ensure_event_open(event_service.get_event_by_slug(db, slug))
    return scheduler_service.add_film_to_event(
        db, event.event_id, payload.film_id, slot_order=payload.slot_order, note=payload.note,
    )


@router.patch("/{slug}/films/{film_id}", response_model=EventFilmOut)
def reorder_film(
    slug: str,
    film_id: str,
    payload: EventFilmUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    event = event_service.ensure_event_open(event_service.get_event_by_slug(db, slug))
    kwargs = {"note": payload.note} if "note" in payload.model_fields_set else {}
    return scheduler_service.reorder(db, event.event_id, film_id, payload.slot_order, **kwargs)


@router.delete("/{slug}/films/{film_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_film(slug: str, film_id: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    event = event_service.ensure_event_open(event_service.get_event_by_slug(db, slug))
    scheduler_service.remove_from_event(db, event.event_id, film_id)


# --- guests -----------------------------------------------------------------

@router.get("/{slug}/headcount", response_model=HeadcountOut)
def headcount(slug: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    event = event_service.get_event_by_slug(db, slug)
    return invitation_service.event_headcount(db, event.event_id)


@router.post("/{slug}/rsvp", response_model=InvitationOut)
def rsvp_as_user(
    slug: str,
    payload: RSVPPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """Authenticated RSVP: no token needed when the invitation matches the actor."""
    event = event_service.ensure_event_open(event_service.get_event_by_slug(db, slug))
    return invitation_service.rsvp_by_event_and_user(
        db, event.event_id, actor.user_id, payload.status,
        plus_ones=payload.plus_ones, note=payload.note,
    )
