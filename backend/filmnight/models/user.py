"""User ORM model: identity anchor consumed by the core as {id, role}."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, Enum as SAEnum
from sqlalchemy.sql import func
from filmnight.database import Base


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    GUEST = "GUEST"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(120), nullable=True)
    email = Column(String(320), nullable=True, unique=True)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    role = Column(SAEnum(Role, native_enum=False, length=10), nullable=False, default=Role.GUEST)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
