"""Event registry service: enforces the event invariants.

Responsibilities:
- Slug uniqueness (storage unique index, IntegrityError -> ConflictError)
- Creator is required on create and immutable afterwards
- Slug is frozen once the event has been published
- Publication and archival are independent flags
- An inline lineup and feature request links are written in the same
  transaction as the event itself
- Deletion cascades to lineup and invitations, never to films
"""
import logging
from datetime import datetime
from typing import Optional, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filmnight.models.event import Event
from filmnight.models.feature_request import FeatureRequest
from filmnight.models.user import User
from filmnight.services import film_service, scheduler_service
from filmnight.services.exceptions import ConflictError, NotFoundError, ServiceError, ValidationError
from filmnight.services.validation import require_text, optional_text, optional_url, slugify
from filmnight.timeutils import utcnow, to_utc, as_aware

logger = logging.getLogger(__name__)

_UPDATABLE = (
    "slug", "title", "description", "scheduled_at", "door_time",
    "location", "hero_image", "is_published", "is_archived",
)


def _check_door_time(scheduled_at: Optional[datetime], door_time: Optional[datetime]) -> None:
    if scheduled_at is not None and door_time is not None and as_aware(door_time) > as_aware(scheduled_at):
        raise ValidationError("door_time must not be after scheduled_at", field="door_time")


def _stage_lineup(db: Session, event_id: str, entries: list[dict[str, Any]]) -> None:
    """Schedule each entry; its position in the list is the default slot.

    An entry names an existing film by ``film_id`` or carries a
    ``reference_url`` (plus film fields) that is upserted into the catalog.
    """
    for index, entry in enumerate(entries):
        entry = dict(entry)
        film_id = entry.pop("film_id", None)
        reference_url = entry.pop("reference_url", None)
        slot_order = entry.pop("slot_order", None)
        note = entry.pop("note", None)
        if film_id:
            film_service.get_film(db, film_id)
        elif reference_url:
            film_id = film_service.stage_film(db, reference_url, **entry).film_id
        else:
            raise ValidationError(
                "Each lineup entry needs a film_id or a reference_url", field=f"lineup[{index}]",
            )
        scheduler_service.stage_slot(db, event_id, film_id, index if slot_order is None else slot_order, note)


def _link_feature_requests(db: Session, event: Event, request_ids: list[str]) -> None:
    """Make ``request_ids`` exactly the feature requests attached to the event."""
    ids = list(dict.fromkeys(request_ids))
    requests = db.query(FeatureRequest).filter(FeatureRequest.request_id.in_(ids)).all() if ids else []
    missing = set(ids) - {r.request_id for r in requests}
    if missing:
        raise NotFoundError("FeatureRequest", ", ".join(sorted(missing)))
    event.feature_requests = requests


def _commit_with_relations(
    db: Session,
    event: Event,
    lineup: Optional[list[dict[str, Any]]],
    feature_request_ids: Optional[list[str]],
) -> None:
    """Stage lineup and feature request changes, then commit everything or nothing."""
    try:
        if feature_request_ids is not None:
            _link_feature_requests(db, event, feature_request_ids)
        if lineup is not None:
            event.event_films.clear()
            db.flush()
            _stage_lineup(db, event.event_id, lineup)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to save lineup for event %s: %s", event.event_id, e)
        raise ConflictError("The lineup lists the same film more than once")
    except ServiceError:
        db.rollback()
        raise


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event", event_id)
    return event


def get_event_by_slug(db: Session, slug: str) -> Event:
    event = db.query(Event).filter(Event.slug == slug).first()
    if not event:
        raise NotFoundError("Event", slug)
    return event


def list_events(db: Session, include_unpublished: bool = False, include_archived: bool = False) -> list[Event]:
    query = db.query(Event)
    if not include_unpublished:
        query = query.filter(Event.is_published.is_(True))
    if not include_archived:
        query = query.filter(Event.is_archived.is_(False))
    return query.order_by(Event.scheduled_at, Event.created_at).all()


def ensure_event_open(event: Event) -> Event:
    """Archived events accept no new scheduling or invitation mutations."""
    if event.is_archived:
        raise ValidationError(f"Event '{event.slug}' is archived", field="event")
    return event


def create_event(
    db: Session,
    title: str,
    scheduled_at: datetime,
    created_by_id: str,
    slug: Optional[str] = None,
    description: Optional[str] = None,
    door_time: Optional[datetime] = None,
    location: Optional[str] = None,
    hero_image: Optional[str] = None,
    is_published: bool = False,
    lineup: Optional[list[dict[str, Any]]] = None,
    feature_request_ids: Optional[list[str]] = None,
) -> Event:
    """Create an event, optionally with its lineup and attached feature requests.

    An explicit slug is normalised with the same rules as a derived one
    ("Screening 1" -> "screening-1").
    """
    title = require_text(title, "title", max_length=255)
    slug = slugify(slug) if slug else slugify(title)
    if scheduled_at is None:
        raise ValidationError("scheduled_at is required", field="scheduled_at")
    scheduled_at = to_utc(scheduled_at)
    door_time = to_utc(door_time)
    _check_door_time(scheduled_at, door_time)

    if not db.query(User).filter(User.user_id == created_by_id).first():
        raise NotFoundError("User", created_by_id)

    event = Event(
        slug=slug,
        title=title,
        description=optional_text(description, "description", max_length=2000),
        scheduled_at=scheduled_at,
        door_time=door_time,
        location=optional_text(location, "location", max_length=255),
        hero_image=optional_url(hero_image, "hero_image"),
        is_published=is_published,
        is_archived=False,
        created_by_id=created_by_id,
    )
    db.add(event)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to create event '%s': %s", slug, e)
        raise ConflictError(f"Event with slug '{slug}' already exists")
    _commit_with_relations(db, event, lineup, feature_request_ids)
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s", slug, event.event_id, created_by_id)
    return event


def update_event(db: Session, event_id: str, updates: dict[str, Any]) -> Event:
    """Apply a partial update. created_by_id is immutable.

    ``lineup`` replaces the whole lineup and ``feature_request_ids`` replaces
    the attached feature requests; None or absent leaves either unchanged.
    """
    event = get_event(db, event_id)

    values = dict(updates)
    lineup = values.pop("lineup", None)
    feature_request_ids = values.pop("feature_request_ids", None)
    if "created_by_id" in values:
        raise ValidationError("created_by_id cannot be changed", field="created_by_id")
    unknown = set(values) - set(_UPDATABLE)
    if unknown:
        raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

    if "slug" in values:
        new_slug = slugify(require_text(values["slug"], "slug"))
        if new_slug != event.slug and event.is_published:
            raise ValidationError("slug cannot change once the event is published", field="slug")
        values["slug"] = new_slug
    if "title" in values:
        values["title"] = require_text(values["title"], "title", max_length=255)
    if "description" in values:
        values["description"] = optional_text(values["description"], "description", max_length=2000)
    if "location" in values:
        values["location"] = optional_text(values["location"], "location", max_length=255)
    if "hero_image" in values:
        values["hero_image"] = optional_url(values["hero_image"], "hero_image")
    if "scheduled_at" in values:
        if values["scheduled_at"] is None:
            raise ValidationError("scheduled_at is required", field="scheduled_at")
        values["scheduled_at"] = to_utc(values["scheduled_at"])
    if "door_time" in values:
        values["door_time"] = to_utc(values["door_time"])
    for field in ("is_published", "is_archived"):
        if field in values and values[field] is None:
            raise ValidationError(f"{field} cannot be null", field=field)
    _check_door_time(
        values.get("scheduled_at", event.scheduled_at),
        values.get("door_time", event.door_time),
    )

    for field, value in values.items():
        setattr(event, field, value)
    event.updated_at = utcnow()

    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to update event %s: %s", event_id, e)
        raise ConflictError(f"Event with slug '{values.get('slug')}' already exists")
    _commit_with_relations(db, event, lineup, feature_request_ids)
    db.refresh(event)
    logger.info("Updated event %s (%s)", event.slug, event_id)
    return event


def _set_flag(db: Session, event_id: str, field: str, value: bool) -> Event:
    event = get_event(db, event_id)
    setattr(event, field, value)
    event.updated_at = utcnow()
    db.commit()
    db.refresh(event)
    logger.info("Event %s: %s=%s", event.slug, field, value)
    return event


def publish_event(db: Session, event_id: str) -> Event:
    return _set_flag(db, event_id, "is_published", True)


def unpublish_event(db: Session, event_id: str) -> Event:
    return _set_flag(db, event_id, "is_published", False)


def archive_event(db: Session, event_id: str) -> Event:
    return _set_flag(db, event_id, "is_archived", True)


def unarchive_event(db: Session, event_id: str) -> Event:
    return _set_flag(db, event_id, "is_archived", False)


def delete_event(db: Session, event_id: str) -> None:
    """Hard-delete an event with its lineup and invitations.

    Films survive; feature requests keep their row with event_id nulled.
    """
    event = get_event(db, event_id)
    for request in event.feature_requests:
        request.event_id = None
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s (%s)", event.slug, event_id)
