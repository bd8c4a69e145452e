"""Pydantic schemas for FeatureRequests."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr

from filmnight.models.feature_request import FeatureRequestStatus


class FeatureRequestCreate(BaseModel):
    film_title: str
    submitted_email: EmailStr
    submitter_name: Optional[str] = None
    letterboxd_url: Optional[str] = None
    notes: Optional[str] = None
    event_slug: Optional[str] = None
    film_id: Optional[str] = None


class FeatureRequestUpdate(BaseModel):
    film_id: Optional[str] = None
    event_slug: Optional[str] = None
    notes: Optional[str] = None


class ModeratePayload(BaseModel):
    status: FeatureRequestStatus


class FeatureRequestOut(BaseModel):
    request_id: str
    event_id: Optional[str] = None
    film_id: Optional[str] = None
    submitted_by_id: Optional[str] = None
    submitted_email: str
    submitter_name: Optional[str] = None
    film_title: str
    letterboxd_url: Optional[str] = None
    notes: Optional[str] = None
    status: FeatureRequestStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FeatureRequestGroupOut(BaseModel):
    normalized_title: str
    count: int
    requests: list[FeatureRequestOut]
