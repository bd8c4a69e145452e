"""FeatureRequest API routes: public intake, admin moderation."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.deps import Actor, get_optional_actor, require_admin
from filmnight.models.event import Event
from filmnight.models.feature_request import FeatureRequestStatus
from filmnight.schemas.feature_request import (
    FeatureRequestCreate, FeatureRequestUpdate, FeatureRequestOut,
    FeatureRequestGroupOut, ModeratePayload,
)
from filmnight.services import feature_request_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _event_id_for_slug(db: Session, slug: Optional[str]) -> Optional[str]:
    """Unknown slugs are dropped rather than rejected; the link is optional."""
    if not slug:
        return None
    event = db.query(Event).filter(Event.slug == slug).first()
    if event is None:
        logger.info("Feature request references unknown event slug '%s'", slug)
        return None
    return event.event_id


@router.post("/", response_model=FeatureRequestOut, status_code=status.HTTP_201_CREATED)
def submit_feature_request(
    payload: FeatureRequestCreate,
    db: Session = Depends(get_db),
    actor: Optional[Actor] = Depends(get_optional_actor),
):
    """Anyone may suggest a film; signed-in users are recorded as the submitter."""
    return feature_request_service.submit(
        db,
        film_title=payload.film_title,
        submitted_email=payload.submitted_email,
        event_id=_event_id_for_slug(db, payload.event_slug),
        film_id=payload.film_id,
        submitted_by_id=actor.user_id if actor else None,
        submitter_name=payload.submitter_name,
        letterboxd_url=payload.letterboxd_url,
        notes=payload.notes,
    )


@router.get("/", response_model=list[FeatureRequestOut])
def list_feature_requests(
    status_filter: Optional[FeatureRequestStatus] = Query(None, alias="status"),
    event_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return feature_request_service.list_feature_requests(db, status=status_filter, event_id=event_id)


@router.get("/grouped", response_model=list[FeatureRequestGroupOut])
def list_grouped(
    status_filter: Optional[FeatureRequestStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Suggestions grouped by normalised film title, most requested first."""
    requests = feature_request_service.list_feature_requests(db, status=status_filter)
    groups = [
        FeatureRequestGroupOut(
            normalized_title=key,
            count=len(items),
            requests=[FeatureRequestOut.model_validate(r) for r in items],
        )
        for key, items in feature_request_service.group_duplicates(requests).items()
    ]
    return sorted(groups, key=lambda g: g.count, reverse=True)


@router.patch("/{request_id}", response_model=FeatureRequestOut)
def update_feature_request(
    request_id: str,
    payload: FeatureRequestUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    changes = {}
    fields = payload.model_fields_set
    if "film_id" in fields:
        changes["film_id"] = payload.film_id
    if "event_slug" in fields:
        changes["event_id"] = _event_id_for_slug(db, payload.event_slug)
    if "notes" in fields:
        changes["notes"] = payload.notes
    return feature_request_service.update_feature_request(db, request_id, **changes)


@router.post("/{request_id}/moderate", response_model=FeatureRequestOut)
def moderate_feature_request(
    request_id: str,
    payload: ModeratePayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return feature_request_service.moderate(db, request_id, payload.status)
