"""Pydantic schemas for Invitations and RSVPs."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from filmnight.models.invitation import InvitationStatus
from filmnight.schemas.event import EventDetailOut


class InvitationCreate(BaseModel):
    event_id: str
    email: EmailStr
    invitee_name: Optional[str] = None
    plus_ones: int = Field(0, ge=0)
    note: Optional[str] = None


class RSVPPayload(BaseModel):
    status: InvitationStatus
    plus_ones: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None


class InvitationOut(BaseModel):
    invitation_id: str
    event_id: str
    user_id: Optional[str] = None
    invitee_name: Optional[str] = None
    email: str
    status: InvitationStatus
    rsvp_at: Optional[datetime] = None
    note: Optional[str] = None
    token: str
    plus_ones: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InvitationWithEventOut(InvitationOut):
    event: EventDetailOut
