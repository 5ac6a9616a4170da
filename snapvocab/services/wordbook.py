"""Word bank operations: saving, finding, deleting and summarizing cards."""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional

from .card_store import CardNotFoundError, CardStore
from .cards import Card, as_day, generate_card_id
from .review_scheduler import apply_defaults, next_upcoming_date, partition

logger = logging.getLogger(__name__)


@dataclass
class ReviewSummary:
    """Counts shown on the review page."""

    total: int
    due: int
    mastered: int
    learning: int
    next_review_date: Optional[date]

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "due": self.due,
            "mastered": self.mastered,
            "learning": self.learning,
            "next_review_date": self.next_review_date.isoformat() if self.next_review_date else None,
        }


def find_card_index(cards: list[Card], card: Card) -> int:
    """Locate a card in a freshly loaded list.

    Cards are matched by id first. Cards saved by clients that had no ids
    are matched on word, save time and image instead. Returns -1 if the
    card is gone.
    """
    for i, candidate in enumerate(cards):
        if candidate.id == card.id:
            return i
    for i, candidate in enumerate(cards):
        if candidate.identity == card.identity:
            return i
    return -1


def find_index_by_id(cards: list[Card], card_id: str) -> int:
    for i, candidate in enumerate(cards):
        if candidate.id == card_id:
            return i
    return -1


def add_card(store: CardStore, card: Card, today=None) -> Card:
    """Save a new card, initializing any review fields it lacks."""
    card = apply_defaults(card, today)
    store.save_one(card)
    logger.info(f"Saved card '{card.word}' ({card.id})")
    return card


def import_entries(store: CardStore, entries: Iterable[dict], today=None) -> list[Card]:
    """Import cards exported from the browser word bank.

    Review fields already present in an entry are kept as they are. An
    entry whose id is already taken, by a stored card or an earlier entry
    of the same batch, gets a fresh id. The batch is saved all at once.
    """
    cards = [apply_defaults(Card.from_dict(entry), today) for entry in entries]

    taken = {card.id for card in store.load_all()}
    for i, card in enumerate(cards):
        if card.id in taken:
            logger.warning(f"Imported card '{card.word}' reuses id {card.id}; assigning a new one")
            cards[i] = card = replace(card, id=generate_card_id())
        taken.add(card.id)

    store.save_many(cards)
    logger.info(f"Imported {len(cards)} cards")
    return cards


def delete_card(store: CardStore, card_id: str) -> Card:
    """Delete a card by id and return it."""
    cards = store.load_all()
    index = find_index_by_id(cards, card_id)
    if index < 0:
        raise CardNotFoundError(f"Card {card_id} not found")
    store.delete_at(index)
    logger.info(f"Deleted card '{cards[index].word}' ({card_id})")
    return cards[index]


def clear_cards(store: CardStore) -> int:
    """Delete every card. Returns how many were removed."""
    count = len(store.load_all())
    store.clear()
    logger.info(f"Cleared word bank ({count} cards)")
    return count


def newest_first(cards: Iterable[Card]) -> list[Card]:
    """Cards ordered by save time, most recent first."""
    return sorted(cards, key=lambda c: c.saved_at, reverse=True)


def count_saved_on(cards: Iterable[Card], day: date) -> int:
    return sum(1 for c in cards if as_day(c.saved_at) == day)


def review_summary(cards: Iterable[Card], today=None) -> ReviewSummary:
    cards = list(cards)
    buckets = partition(cards, today)
    return ReviewSummary(
        total=len(cards),
        due=len(buckets.due),
        mastered=len(buckets.mastered),
        learning=len(buckets.learning),
        next_review_date=next_upcoming_date(cards, today),
    )
