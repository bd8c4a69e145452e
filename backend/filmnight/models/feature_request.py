"""FeatureRequest ORM model: a guest's film suggestion awaiting moderation."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from filmnight.database import Base


class FeatureRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class FeatureRequest(Base):
    __tablename__ = "feature_requests"

    request_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # All three links are lookups only; deleting the target nulls the column
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="SET NULL"), nullable=True)
    film_id = Column(String(36), ForeignKey("films.film_id", ondelete="SET NULL"), nullable=True)
    submitted_by_id = Column(String(36), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    submitted_email = Column(String(320), nullable=False)
    submitter_name = Column(String(120), nullable=True)
    film_title = Column(String(200), nullable=False)
    letterboxd_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(
        SAEnum(FeatureRequestStatus, native_enum=False, length=10),
        nullable=False,
        default=FeatureRequestStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="feature_requests")
    film = relationship("Film", back_populates="feature_requests")
