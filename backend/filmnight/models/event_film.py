"""EventFilm ORM model: one film's slot in one event's lineup."""
import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from filmnight.database import Base
from filmnight.timeutils import utcnow


class EventFilm(Base):
    __tablename__ = "event_films"
    __table_args__ = (
        UniqueConstraint("event_id", "film_id", name="uq_event_films_event_film"),
    )

    event_film_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    film_id = Column(String(36), ForeignKey("films.film_id", ondelete="RESTRICT"), nullable=False)
    slot_order = Column(Integer, nullable=False, default=0)
    note = Column(String(255), nullable=True)
    # Client-side default keeps sub-second resolution for the display tie-break
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    event = relationship("Event", back_populates="event_films")
    film = relationship("Film", back_populates="event_films")
