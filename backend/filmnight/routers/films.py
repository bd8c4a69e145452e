"""Film catalog API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from filmnight.database import get_db
from filmnight.deps import Actor, require_admin
from filmnight.schemas.film import FilmCreate, FilmUpdate, FilmOut
from filmnight.services import film_service
from filmnight.services.letterboxd import fetch_letterboxd_metadata

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=FilmOut, status_code=status.HTTP_201_CREATED)
def create_film(
    payload: FilmCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Add a film. With fetch_metadata, blanks are filled from the reference page."""
    fields = payload.model_dump(exclude={"reference_url", "fetch_metadata"}, exclude_none=True)
    if payload.fetch_metadata:
        metadata = fetch_letterboxd_metadata(payload.reference_url)
        if metadata:
            fields = {**metadata.as_film_fields(), **fields}
    title = fields.pop("title", None)
    return film_service.create_film(db, title=title, reference_url=payload.reference_url, **fields)


@router.put("/", response_model=FilmOut)
def upsert_film(
    payload: FilmCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Create or update the film with this reference URL; omitted fields are kept."""
    fields = payload.model_dump(exclude={"reference_url", "fetch_metadata"}, exclude_none=True)
    if payload.fetch_metadata:
        metadata = fetch_letterboxd_metadata(payload.reference_url)
        if metadata:
            fields = {**metadata.as_film_fields(), **fields}
    return film_service.upsert_film(db, payload.reference_url, **fields)


@router.get("/", response_model=list[FilmOut])
def list_films(db: Session = Depends(get_db)):
    return film_service.list_films(db)


@router.get("/{film_id}", response_model=FilmOut)
def get_film(film_id: str, db: Session = Depends(get_db)):
    return film_service.get_film(db, film_id)


@router.patch("/{film_id}", response_model=FilmOut)
def update_film(
    film_id: str,
    payload: FilmUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return film_service.update_film(db, film_id, payload.model_dump(exclude_unset=True))


@router.delete("/{film_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_film(film_id: str, db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    film_service.delete_film(db, film_id)
