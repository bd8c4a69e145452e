"""Film catalog service: reference URL is the natural key."""
import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filmnight.models.event_film import EventFilm
from filmnight.models.film import Film
from filmnight.services.exceptions import (
    ConflictError, NotFoundError, ReferentialConstraintError, ServiceError, ValidationError,
)
from filmnight.services.validation import require_text, require_url, optional_text, optional_url
from filmnight.timeutils import utcnow

logger = logging.getLogger(__name__)

_UPDATABLE = ("title", "reference_url", "synopsis", "runtime_minutes", "release_year", "poster_image", "director")


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    if "title" in cleaned:
        cleaned["title"] = require_text(cleaned["title"], "title", max_length=200)
    if "reference_url" in cleaned:
        cleaned["reference_url"] = require_url(cleaned["reference_url"], "reference_url")
    if "poster_image" in cleaned:
        cleaned["poster_image"] = optional_url(cleaned["poster_image"], "poster_image")
    if "director" in cleaned:
        cleaned["director"] = optional_text(cleaned["director"], "director", max_length=120)
    if "synopsis" in cleaned:
        cleaned["synopsis"] = optional_text(cleaned["synopsis"], "synopsis", max_length=2000)
    runtime = cleaned.get("runtime_minutes")
    if runtime is not None and not 1 <= runtime <= 600:
        raise ValidationError("runtime_minutes must be between 1 and 600", field="runtime_minutes")
    return cleaned


def get_film(db: Session, film_id: str) -> Film:
    film = db.query(Film).filter(Film.film_id == film_id).first()
    if not film:
        raise NotFoundError("Film", film_id)
    return film


def get_film_by_reference_url(db: Session, reference_url: str) -> Optional[Film]:
    return db.query(Film).filter(Film.reference_url == reference_url.strip()).first()


def list_films(db: Session) -> list[Film]:
    return db.query(Film).order_by(Film.title).all()


def create_film(db: Session, title: str, reference_url: str, **fields: Any) -> Film:
    """Insert a catalog entry; a duplicate reference URL is a ConflictError."""
    unknown = set(fields) - set(_UPDATABLE)
    if unknown:
        raise ValidationError(f"Unknown film fields: {', '.join(sorted(unknown))}")
    values = _clean_fields({"title": title, "reference_url": reference_url, **fields})

    film = Film(**values)
    db.add(film)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to create film '%s': %s", values["reference_url"], e)
        raise ConflictError(f"Film with reference URL '{values['reference_url']}' already exists")
    db.refresh(film)
    logger.info("Created film '%s' (%s)", film.title, film.film_id)
    return film


def stage_film(db: Session, reference_url: str, **fields: Any) -> Film:
    """Insert or update by reference URL without committing; omitted/None fields keep their value.

    The caller owns the transaction. New rows are flushed so later lookups in
    the same transaction find them.
    """
    unknown = set(fields) - set(_UPDATABLE)
    if unknown:
        raise ValidationError(f"Unknown film fields: {', '.join(sorted(unknown))}")
    reference_url = require_url(reference_url, "reference_url")
    values = _clean_fields({k: v for k, v in fields.items() if v is not None})

    film = get_film_by_reference_url(db, reference_url)
    if film is None:
        if not values.get("title"):
            raise ValidationError("title is required when creating a new film", field="title")
        film = Film(reference_url=reference_url, **values)
        db.add(film)
        db.flush()
        return film

    for field, value in values.items():
        setattr(film, field, value)
    film.updated_at = utcnow()
    return film


def upsert_film(db: Session, reference_url: str, **fields: Any) -> Film:
    """Insert or update by reference URL in its own transaction."""
    try:
        film = stage_film(db, reference_url, **fields)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to upsert film '%s': %s", reference_url, e)
        raise ConflictError(f"Film with reference URL '{reference_url}' was changed concurrently; try again")
    except ServiceError:
        db.rollback()
        raise
    db.refresh(film)
    logger.info("Upserted film '%s' (%s)", film.title, film.film_id)
    return film


def update_film(db: Session, film_id: str, updates: dict[str, Any]) -> Film:
    film = get_film(db, film_id)
    unknown = set(updates) - set(_UPDATABLE)
    if unknown:
        raise ValidationError(f"Unknown film fields: {', '.join(sorted(unknown))}")
    for field, value in _clean_fields(updates).items():
        setattr(film, field, value)
    film.updated_at = utcnow()
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Failed to update film %s: %s", film_id, e)
        raise ConflictError(f"Film with reference URL '{updates.get('reference_url')}' already exists")
    db.refresh(film)
    logger.info("Updated film %s", film_id)
    return film


def delete_film(db: Session, film_id: str) -> None:
    """Delete a film unless it is scheduled; feature requests lose their link."""
    film = get_film(db, film_id)
    scheduled = db.query(EventFilm).filter(EventFilm.film_id == film_id).count()
    if scheduled:
        raise ReferentialConstraintError(
            f"Film '{film.title}' is scheduled in {scheduled} event(s); remove it from those lineups first"
        )
    for request in film.feature_requests:
        request.film_id = None
    db.delete(film)
    db.commit()
    logger.info("Deleted film %s", film_id)
