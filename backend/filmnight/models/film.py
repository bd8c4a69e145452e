"""Film ORM model: catalog entry keyed by its reference URL."""
import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from filmnight.database import Base


class Film(Base):
    __tablename__ = "films"

    film_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    reference_url = Column(String(500), nullable=False, unique=True)
    synopsis = Column(Text, nullable=True)
    runtime_minutes = Column(Integer, nullable=True)
    release_year = Column(Integer, nullable=True)
    poster_image = Column(String(1000), nullable=True)
    director = Column(String(120), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event_films = relationship("EventFilm", back_populates="film")
    feature_requests = relationship("FeatureRequest", back_populates="film")
