"""Card storage for the word bank.

The scheduler never talks to storage directly. Services load the whole
card list, decide what changed, and write single cards back through a
CardStore. Positions passed to replace_at/delete_at refer to the order
returned by the most recent load_all().
"""

import logging
from abc import ABC, abstractmethod

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.models import WordCard
from .cards import Card, ReviewStage

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The card store could not be read or written."""


class CardNotFoundError(StorageError):
    """The card to update is no longer in the store."""


class CardStore(ABC):
    """Persistence contract for saved cards."""

    @abstractmethod
    def load_all(self) -> list[Card]:
        """Return every saved card in insertion order."""

    @abstractmethod
    def save_one(self, card: Card) -> None:
        """Append a new card."""

    def save_many(self, cards: list[Card]) -> None:
        """Append several cards. Stores that can should write them all or none."""
        for card in cards:
            self.save_one(card)

    @abstractmethod
    def replace_at(self, index: int, card: Card) -> None:
        """Overwrite the card at a position of the load_all() order."""

    @abstractmethod
    def delete_at(self, index: int) -> None:
        """Remove the card at a position of the load_all() order."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every card."""


def _check_index(index: int, size: int) -> None:
    if index < 0 or index >= size:
        raise CardNotFoundError(f"Card index {index} out of range (have {size})")


class InMemoryCardStore(CardStore):
    """List-backed store, used for tests and single-process sessions."""

    def __init__(self, cards=()):
        self._cards: list[Card] = list(cards)

    def load_all(self) -> list[Card]:
        return list(self._cards)

    def save_one(self, card: Card) -> None:
        self._cards.append(card)

    def save_many(self, cards: list[Card]) -> None:
        self._cards.extend(cards)

    def replace_at(self, index: int, card: Card) -> None:
        _check_index(index, len(self._cards))
        self._cards[index] = card

    def delete_at(self, index: int) -> None:
        _check_index(index, len(self._cards))
        del self._cards[index]

    def clear(self) -> None:
        self._cards.clear()


def row_to_card(row: WordCard) -> Card:
    """Convert a database row into a Card."""
    return Card(
        id=row.id,
        word=row.word,
        translation=row.translation or "",
        example=row.example or "",
        image=row.image or "",
        saved_at=row.saved_at,
        review_stage=ReviewStage.coerce(row.review_stage),
        next_review_date=row.next_review_date,
        review_count=row.review_count,
        last_review_date=row.last_review_date,
    )


def _copy_to_row(card: Card, row: WordCard) -> None:
    row.id = card.id
    row.word = card.word
    row.translation = card.translation
    row.example = card.example
    row.image = card.image
    row.saved_at = card.saved_at
    row.review_stage = int(card.review_stage) if card.review_stage is not None else None
    row.next_review_date = card.next_review_date
    row.review_count = card.review_count
    row.last_review_date = card.last_review_date


class SqlAlchemyCardStore(CardStore):
    """Store backed by the word_cards table.

    Every write commits immediately. Database errors roll the session back
    and surface as StorageError.
    """

    def __init__(self, db: Session):
        self.db = db

    def _rows(self) -> list[WordCard]:
        return self.db.query(WordCard).order_by(WordCard.seq.asc()).all()

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Failed to {action}: {error}")
        raise StorageError(f"Failed to {action}") from error

    def load_all(self) -> list[Card]:
        try:
            return [row_to_card(row) for row in self._rows()]
        except SQLAlchemyError as e:
            self._fail("load cards", e)

    def save_one(self, card: Card) -> None:
        try:
            self._add_rows([card])
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"save card '{card.word}'", e)

    def save_many(self, cards: list[Card]) -> None:
        """Add every card in one transaction."""
        try:
            self._add_rows(cards)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"save {len(cards)} cards", e)

    def _add_rows(self, cards: list[Card]) -> None:
        last_seq = self.db.query(func.max(WordCard.seq)).scalar() or 0
        for offset, card in enumerate(cards, start=1):
            row = WordCard(seq=last_seq + offset)
            _copy_to_row(card, row)
            self.db.add(row)

    def replace_at(self, index: int, card: Card) -> None:
        try:
            rows = self._rows()
            _check_index(index, len(rows))
            _copy_to_row(card, rows[index])
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"update card '{card.word}'", e)

    def delete_at(self, index: int) -> None:
        try:
            rows = self._rows()
            _check_index(index, len(rows))
            self.db.delete(rows[index])
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("delete card", e)

    def clear(self) -> None:
        try:
            self.db.query(WordCard).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("clear cards", e)
