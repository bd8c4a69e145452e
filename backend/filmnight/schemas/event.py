"""Pydantic schemas for Events and their lineup."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from filmnight.schemas.film import FilmOut


class LineupItem(BaseModel):
    """One lineup entry: an existing film by id, or a film upserted by reference URL."""
    film_id: Optional[str] = None
    reference_url: Optional[str] = None
    title: Optional[str] = None
    synopsis: Optional[str] = None
    runtime_minutes: Optional[int] = Field(None, ge=1, le=600)
    release_year: Optional[int] = None
    poster_image: Optional[str] = None
    director: Optional[str] = None
    slot_order: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None
    fetch_metadata: bool = False


class EventCreate(BaseModel):
    title: str
    scheduled_at: datetime
    slug: Optional[str] = None
    description: Optional[str] = None
    door_time: Optional[datetime] = None
    location: Optional[str] = None
    hero_image: Optional[str] = None
    is_published: bool = False
    lineup: Optional[list[LineupItem]] = None
    feature_request_ids: Optional[list[str]] = None


class EventUpdate(BaseModel):
    lineup: Optional[list[LineupItem]] = None  # replaces the whole lineup
    feature_request_ids: Optional[list[str]] = None
    slug: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    door_time: Optional[datetime] = None
    location: Optional[str] = None
    hero_image: Optional[str] = None
    is_published: Optional[bool] = None
    is_archived: Optional[bool] = None
    created_by_id: Optional[str] = None  # accepted only to be rejected


class EventFilmCreate(BaseModel):
    film_id: str
    slot_order: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None


class EventFilmUpdate(BaseModel):
    slot_order: int = Field(..., ge=0)
    note: Optional[str] = None


class EventFilmOut(BaseModel):
    event_film_id: str
    event_id: str
    film_id: str
    slot_order: int
    note: Optional[str] = None
    created_at: datetime
    film: FilmOut

    model_config = {"from_attributes": True}


class EventOut(BaseModel):
    event_id: str
    slug: str
    title: str
    description: Optional[str] = None
    scheduled_at: datetime
    door_time: Optional[datetime] = None
    location: Optional[str] = None
    hero_image: Optional[str] = None
    is_published: bool
    is_archived: bool
    created_by_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventDetailOut(EventOut):
    lineup: list[EventFilmOut] = []


class HeadcountOut(BaseModel):
    invited: int
    pending: int
    accepted: int
    declined: int
    maybe: int
    attending: int
    expected_guests: int
