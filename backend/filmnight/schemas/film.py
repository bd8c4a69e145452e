"""Pydantic schemas for Films."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class FilmCreate(BaseModel):
    reference_url: str
    title: Optional[str] = None  # may come from the fetched page instead
    synopsis: Optional[str] = None
    runtime_minutes: Optional[int] = Field(None, ge=1, le=600)
    release_year: Optional[int] = None
    poster_image: Optional[str] = None
    director: Optional[str] = None
    fetch_metadata: bool = False


class FilmUpdate(BaseModel):
    title: Optional[str] = None
    reference_url: Optional[str] = None
    synopsis: Optional[str] = None
    runtime_minutes: Optional[int] = Field(None, ge=1, le=600)
    release_year: Optional[int] = None
    poster_image: Optional[str] = None
    director: Optional[str] = None


class FilmOut(BaseModel):
    film_id: str
    title: str
    reference_url: str
    synopsis: Optional[str] = None
    runtime_minutes: Optional[int] = None
    release_year: Optional[int] = None
    poster_image: Optional[str] = None
    director: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
