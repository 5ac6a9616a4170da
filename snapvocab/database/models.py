"""SQLAlchemy models for SnapVocab.

The word bank is a single table. Review fields are nullable so cards
imported from older clients can be stored before they are initialized.
"""

from datetime import datetime
import uuid
from sqlalchemy import (
    Column,
    String,
    Integer,
    Date,
    DateTime,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


class WordCard(Base):
    """A saved vocabulary card with its spaced repetition state."""

    __tablename__ = "word_cards"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Insertion order; cards load in the order they were saved
    seq = Column(Integer, nullable=False, index=True)

    # Card content
    word = Column(String(200), nullable=False, index=True)
    translation = Column(String(500), default="")
    example = Column(Text, default="")
    image = Column(Text, default="")  # URL or data URI
    saved_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Spaced repetition fields
    review_stage = Column(Integer, nullable=True)  # 0-5 learning, 6 mastered
    next_review_date = Column(Date, nullable=True)
    review_count = Column(Integer, nullable=True)
    last_review_date = Column(Date, nullable=True)
