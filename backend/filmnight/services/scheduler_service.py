"""Event-film scheduler: lineup slots for one event."""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from filmnight.models.event import Event
from filmnight.models.event_film import EventFilm
from filmnight.models.film import Film
from filmnight.services.exceptions import ConflictError, NotFoundError
from filmnight.services.validation import optional_text, require_non_negative

logger = logging.getLogger(__name__)

_UNSET = object()


def _lock_event(db: Session, event_id: str) -> Event:
    """Serialise lineup appends on the event row.

    PostgreSQL takes a row lock with SELECT ... FOR UPDATE. SQLite has no row
    locks, so a no-op UPDATE takes the database write lock up front instead;
    if another writer holds it past the busy timeout the append is a conflict.
    """
    if db.get_bind().dialect.name == "sqlite":
        try:
            db.query(Event).filter(Event.event_id == event_id).update(
                {Event.updated_at: Event.updated_at}, synchronize_session=False,
            )
        except OperationalError as e:
            db.rollback()
            logger.warning("Could not lock event %s for a lineup change: %s", event_id, e)
            raise ConflictError("The lineup is being changed by another request; try again")
    event = db.query(Event).filter(Event.event_id == event_id).with_for_update().first()
    if not event:
        db.rollback()
        raise NotFoundError("Event", event_id)
    return event


def _get_slot(db: Session, event_id: str, film_id: str) -> EventFilm:
    slot = (
        db.query(EventFilm)
        .filter(EventFilm.event_id == event_id, EventFilm.film_id == film_id)
        .first()
    )
    if not slot:
        raise NotFoundError("EventFilm", f"{event_id}/{film_id}")
    return slot


def list_lineup(db: Session, event_id: str) -> list[EventFilm]:
    """Films of an event in display order; ties fall back to creation order."""
    return (
        db.query(EventFilm)
        .filter(EventFilm.event_id == event_id)
        .order_by(EventFilm.slot_order, EventFilm.created_at, EventFilm.event_film_id)
        .all()
    )


def stage_slot(
    db: Session,
    event_id: str,
    film_id: str,
    slot_order: int,
    note: Optional[str] = None,
) -> EventFilm:
    """Add a lineup slot to the session; the caller commits."""
    slot = EventFilm(
        event_id=event_id,
        film_id=film_id,
        slot_order=require_non_negative(slot_order, "slot_order"),
        note=optional_text(note, "note", max_length=255),
    )
    db.add(slot)
    return slot


def add_film_to_event(
    db: Session,
    event_id: str,
    film_id: str,
    slot_order: Optional[int] = None,
    note: Optional[str] = None,
) -> EventFilm:
    """Schedule a film. Omitted slot_order appends after the current last slot."""
    if slot_order is not None:
        require_non_negative(slot_order, "slot_order")
    note = optional_text(note, "note", max_length=255)

    _lock_event(db, event_id)
    if not db.query(Film).filter(Film.film_id == film_id).first():
        db.rollback()
        raise NotFoundError("Film", film_id)

    if slot_order is None:
        current_max = (
            db.query(func.max(EventFilm.slot_order))
            .filter(EventFilm.event_id == event_id)
            .scalar()
        )
        slot_order = 0 if current_max is None else current_max + 1

    slot = stage_slot(db, event_id, film_id, slot_order, note)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to schedule film %s in event %s: %s", film_id, event_id, e)
        raise ConflictError("Film is already scheduled for this event; reorder it instead")
    db.refresh(slot)
    logger.info("Scheduled film %s in event %s at slot %d", film_id, event_id, slot_order)
    return slot


def reorder(db: Session, event_id: str, film_id: str, new_slot_order: int, note=_UNSET) -> EventFilm:
    """Move a scheduled film to a new slot (and optionally replace its note)."""
    require_non_negative(new_slot_order, "slot_order")
    if note is not _UNSET:
        note = optional_text(note, "note", max_length=255)
    slot = _get_slot(db, event_id, film_id)
    slot.slot_order = new_slot_order
    if note is not _UNSET:
        slot.note = note
    db.commit()
    db.refresh(slot)
    logger.info("Moved film %s in event %s to slot %d", film_id, event_id, new_slot_order)
    return slot


def remove_from_event(db: Session, event_id: str, film_id: str) -> None:
    """Unschedule a film. Remaining slots keep their numbers."""
    slot = _get_slot(db, event_id, film_id)
    db.delete(slot)
    db.commit()
    logger.info("Removed film %s from event %s", film_id, event_id)
