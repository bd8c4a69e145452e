"""Feature request intake: guest film suggestions and their moderation."""
import logging
import re
from collections import OrderedDict
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from filmnight.models.event import Event
from filmnight.models.feature_request import FeatureRequest, FeatureRequestStatus
from filmnight.models.film import Film
from filmnight.models.user import User
from filmnight.services.exceptions import NotFoundError, ValidationError
from filmnight.services.transitions import check_feature_request_transition, parse_feature_request_status
from filmnight.services.validation import normalize_email, optional_text, optional_url, require_text
from filmnight.timeutils import utcnow

logger = logging.getLogger(__name__)

_UNSET = object()


def _check_reference(db: Session, model, column, value: Optional[str], resource: str) -> Optional[str]:
    if value is None:
        return None
    if not db.query(model).filter(column == value).first():
        raise NotFoundError(resource, value)
    return value


def get_feature_request(db: Session, request_id: str) -> FeatureRequest:
    request = db.query(FeatureRequest).filter(FeatureRequest.request_id == request_id).first()
    if not request:
        raise NotFoundError("FeatureRequest", request_id)
    return request


def list_feature_requests(
    db: Session,
    status: Optional[Any] = None,
    event_id: Optional[str] = None,
) -> list[FeatureRequest]:
    query = db.query(FeatureRequest)
    if status is not None:
        query = query.filter(FeatureRequest.status == parse_feature_request_status(status))
    if event_id:
        query = query.filter(FeatureRequest.event_id == event_id)
    return query.order_by(FeatureRequest.created_at.desc()).all()


def submit(
    db: Session,
    film_title: str,
    submitted_email: str,
    event_id: Optional[str] = None,
    film_id: Optional[str] = None,
    submitted_by_id: Optional[str] = None,
    submitter_name: Optional[str] = None,
    letterboxd_url: Optional[str] = None,
    notes: Optional[str] = None,
) -> FeatureRequest:
    """Record a suggestion as PENDING. Duplicates are accepted as-is."""
    request = FeatureRequest(
        film_title=require_text(film_title, "film_title", max_length=200),
        submitted_email=normalize_email(submitted_email, "submitted_email"),
        submitter_name=optional_text(submitter_name, "submitter_name", max_length=120),
        letterboxd_url=optional_url(letterboxd_url, "letterboxd_url", max_length=500),
        notes=optional_text(notes, "notes", max_length=1000),
        event_id=_check_reference(db, Event, Event.event_id, event_id, "Event"),
        film_id=_check_reference(db, Film, Film.film_id, film_id, "Film"),
        submitted_by_id=_check_reference(db, User, User.user_id, submitted_by_id, "User"),
        status=FeatureRequestStatus.PENDING,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info("FeatureRequest %s submitted for '%s' by %s", request.request_id, request.film_title, request.submitted_email)
    return request


def moderate(db: Session, request_id: str, new_status: Any) -> FeatureRequest:
    """Move a request along PENDING -> APPROVED|REJECTED -> ARCHIVED."""
    request = get_feature_request(db, request_id)
    target = parse_feature_request_status(new_status)
    previous = request.status
    check_feature_request_transition(previous, target)
    request.status = target
    request.updated_at = utcnow()
    db.commit()
    db.refresh(request)
    logger.info("FeatureRequest %s moderated %s -> %s", request_id, previous.value, target.value)
    return request


def update_feature_request(
    db: Session,
    request_id: str,
    film_id=_UNSET,
    event_id=_UNSET,
    notes=_UNSET,
) -> FeatureRequest:
    """Re-link the weak references or edit notes. Passing None clears a link."""
    request = get_feature_request(db, request_id)
    if request.status == FeatureRequestStatus.ARCHIVED:
        raise ValidationError("Archived feature requests cannot be edited", field="status")
    changes = {}
    if film_id is not _UNSET:
        changes["film_id"] = _check_reference(db, Film, Film.film_id, film_id, "Film")
    if event_id is not _UNSET:
        changes["event_id"] = _check_reference(db, Event, Event.event_id, event_id, "Event")
    if notes is not _UNSET:
        changes["notes"] = optional_text(notes, "notes", max_length=1000)
    for field, value in changes.items():
        setattr(request, field, value)
    request.updated_at = utcnow()
    db.commit()
    db.refresh(request)
    logger.info("Updated FeatureRequest %s", request_id)
    return request


def normalize_title(title: str) -> str:
    """Case/punctuation-insensitive key used to spot duplicate suggestions."""
    return re.sub(r"[^a-z0-9]+", " ", title.lower()).strip()


def group_duplicates(requests: Iterable[FeatureRequest]) -> "OrderedDict[str, list[FeatureRequest]]":
    """Group requests by normalised film title, preserving first-seen order."""
    groups: "OrderedDict[str, list[FeatureRequest]]" = OrderedDict()
    for request in requests:
        groups.setdefault(normalize_title(request.film_title), []).append(request)
    return groups
