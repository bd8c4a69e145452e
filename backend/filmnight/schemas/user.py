"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr

from filmnight.models.user import Role


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Role = Role.GUEST


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    email_verified_at: Optional[datetime] = None
    role: Optional[Role] = None


class UserOut(BaseModel):
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    email_verified_at: Optional[datetime] = None
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}
