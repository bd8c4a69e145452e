"""Invitation ORM model: one guest's RSVP record for one event."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from filmnight.database import Base


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    MAYBE = "MAYBE"


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_invitations_event_email"),
        CheckConstraint("plus_ones >= 0", name="ck_invitations_plus_ones_non_negative"),
    )

    invitation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    invitee_name = Column(String(120), nullable=True)
    email = Column(String(320), nullable=False)
    status = Column(
        SAEnum(InvitationStatus, native_enum=False, length=10),
        nullable=False,
        default=InvitationStatus.PENDING,
    )
    rsvp_at = Column(DateTime(timezone=True), nullable=True)
    note = Column(String(500), nullable=True)
    token = Column(String(64), nullable=False, unique=True)
    plus_ones = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="invitations")
