"""Card model for the SnapVocab word bank.

A card is one saved word: the photo it came from, its translation and an
example sentence, plus the four review fields the scheduler owns.

Cards saved by older clients have no id and may be missing some or all
review fields, so every review field is optional here. The scheduler
treats missing fields as if the card had just been initialized.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import IntEnum
from typing import Optional

logger = logging.getLogger(__name__)


class ReviewStage(IntEnum):
    """Position in the review progression. MASTERED is terminal."""

    NEW = 0
    FIRST = 1
    SECOND = 2
    THIRD = 3
    FOURTH = 4
    FIFTH = 5
    MASTERED = 6

    @classmethod
    def coerce(cls, value) -> Optional["ReviewStage"]:
        """Convert a stored stage value to a ReviewStage.

        None stays None (field never initialized). Anything that is not a
        valid stage falls back to NEW so it can never count as mastered.
        """
        if value is None:
            return None
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            logger.warning(f"Invalid review stage {value!r}, treating as NEW")
            return cls.NEW


def as_day(value) -> Optional[date]:
    """Reduce a date, datetime or ISO string to a calendar day."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if "T" in text or " " in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def _as_datetime(value) -> datetime:
    if value is None or value == "":
        return datetime.utcnow()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def generate_card_id() -> str:
    return str(uuid.uuid4())


@dataclass
class ReviewFields:
    """The review state the scheduler assigns to a new card."""

    review_stage: ReviewStage
    review_count: int
    last_review_date: date
    next_review_date: date


@dataclass
class Card:
    """A saved vocabulary card."""

    word: str
    translation: str = ""
    example: str = ""
    image: str = ""
    saved_at: datetime = field(default_factory=datetime.utcnow)
    id: str = field(default_factory=generate_card_id)

    # Review fields (None until initialized)
    review_stage: Optional[ReviewStage] = None
    next_review_date: Optional[date] = None
    review_count: Optional[int] = None
    last_review_date: Optional[date] = None

    @property
    def identity(self) -> tuple:
        """Value identity used by clients that never stored an id."""
        return (self.word, self.saved_at, self.image)

    @property
    def is_mastered(self) -> bool:
        return self.review_stage == ReviewStage.MASTERED

    def to_dict(self) -> dict:
        """Serialize for JSON responses."""
        return {
            "id": self.id,
            "word": self.word,
            "translation": self.translation,
            "example": self.example,
            "image": self.image,
            "saved_at": self.saved_at.isoformat(),
            "review_stage": int(self.review_stage) if self.review_stage is not None else None,
            "next_review_date": self.next_review_date.isoformat() if self.next_review_date else None,
            "review_count": self.review_count,
            "last_review_date": self.last_review_date.isoformat() if self.last_review_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Card":
        """Build a card from a JSON entry.

        Accepts both snake_case keys and the camelCase keys of the legacy
        browser word bank. Entries without an id get a new one.
        """

        def pick(snake: str, camel: str):
            if snake in data:
                return data[snake]
            return data.get(camel)

        if not data.get("word"):
            raise ValueError("Card entry is missing 'word'")

        review_count = pick("review_count", "reviewCount")
        return cls(
            id=data.get("id") or generate_card_id(),
            word=data["word"],
            translation=data.get("translation") or "",
            example=data.get("example") or "",
            image=data.get("image") or "",
            saved_at=_as_datetime(pick("saved_at", "savedAt")),
            review_stage=ReviewStage.coerce(pick("review_stage", "reviewStage")),
            next_review_date=as_day(pick("next_review_date", "nextReviewDate")),
            review_count=int(review_count) if review_count is not None else None,
            last_review_date=as_day(pick("last_review_date", "lastReviewDate")),
        )
