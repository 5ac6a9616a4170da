"""In-session ordering of due cards for one review pass."""

from typing import Iterable, Iterator, Optional

from .cards import Card
from .review_scheduler import partition


class EmptyQueueError(LookupError):
    """Raised when a decision is made but no card is waiting."""


class ReviewQueue:
    """Due cards for one pass, with a cursor on the card being shown.

    The queue starts in whatever order the store returned the cards.
    Deferring a card moves it to the back without touching its schedule.
    After a committed decision the whole queue is rebuilt from the store,
    so cards that are no longer due drop out.
    """

    def __init__(self, cards: Iterable[Card] = ()):
        self._cards: list[Card] = list(cards)
        self._cursor = 0

    @classmethod
    def from_cards(cls, cards: Iterable[Card], today=None) -> "ReviewQueue":
        """Build a queue from every due card in a full card list."""
        return cls(partition(cards, today).due)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(list(self._cards))

    @property
    def is_empty(self) -> bool:
        return not self._cards

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def cards(self) -> list[Card]:
        return list(self._cards)

    def current(self) -> Optional[Card]:
        if not self._cards:
            return None
        return self._cards[self._cursor]

    def advance(self, cards: Iterable[Card], today=None) -> None:
        """Rebuild from a freshly loaded card list after a committed decision."""
        self._cards = partition(cards, today).due
        self._cursor = 0

    def defer_current(self) -> None:
        """Move the current card to the back of the queue."""
        if not self._cards:
            return
        card = self._cards.pop(self._cursor)
        self._cards.append(card)
        # The card at the last slot has nowhere to move, so wrap around
        if self._cursor >= len(self._cards) - 1:
            self._cursor = 0
