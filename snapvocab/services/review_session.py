"""Review sessions: one pass through the cards due today.

A session owns a ReviewQueue. Committing decisions ("remembered" and
"not yet") are applied in three steps that are never interleaved:

1. Compute the updated card with the scheduler
2. Write it through the card store
3. Rebuild the queue from a fresh load of every card

If the store fails, the error propagates and the queue is left exactly as
it was, so the same card can be decided again. Deferring a card only
reorders the queue and never touches storage.
"""

import logging
import time
import uuid
from datetime import date
from threading import Lock
from typing import Callable, Optional

from .card_store import CardNotFoundError, CardStore
from .cards import Card
from .review_queue import EmptyQueueError, ReviewQueue
from .review_scheduler import remember, reset_progress
from .wordbook import find_card_index

logger = logging.getLogger(__name__)


class ReviewSession:
    """One interactive review pass."""

    def __init__(self, queue: ReviewQueue, session_id: Optional[str] = None):
        self.id = session_id or str(uuid.uuid4())
        self.queue = queue
        self.reviewed = 0
        self._lock = Lock()

    @classmethod
    def start(cls, store: CardStore, today=None) -> "ReviewSession":
        """Open a session over every card due on `today`."""
        session = cls(ReviewQueue.from_cards(store.load_all(), today))
        logger.info(f"Review session {session.id} started with {len(session.queue)} due cards")
        return session

    @property
    def current(self) -> Optional[Card]:
        return self.queue.current()

    @property
    def remaining(self) -> int:
        return len(self.queue)

    @property
    def is_finished(self) -> bool:
        return self.queue.is_empty

    def remember(self, store: CardStore, today=None) -> Card:
        """The learner remembered the current card."""
        return self._commit(store, remember, today, "remember")

    def reset(self, store: CardStore, today=None) -> Card:
        """The learner has not retained the current card yet."""
        return self._commit(store, reset_progress, today, "reset")

    def defer(self) -> Optional[Card]:
        """Skip the current card for now. Returns the new current card."""
        with self._lock:
            self.queue.defer_current()
            return self.queue.current()

    def _commit(
        self,
        store: CardStore,
        decide: Callable[[Card, Optional[date]], Card],
        today,
        action: str,
    ) -> Card:
        with self._lock:
            current = self.queue.current()
            if current is None:
                raise EmptyQueueError("No card left to review in this session")

            cards = store.load_all()
            index = find_card_index(cards, current)
            if index < 0:
                # Deleted elsewhere; drop it from this pass
                logger.warning(f"Card '{current.word}' ({current.id}) vanished during review")
                self.queue.advance(cards, today)
                raise CardNotFoundError(f"Card {current.id} is no longer in the word bank")

            updated = decide(cards[index], today)
            store.replace_at(index, updated)
            self.queue.advance(store.load_all(), today)
            self.reviewed += 1

        logger.info(
            f"Session {self.id}: {action} '{updated.word}' -> stage "
            f"{int(updated.review_stage)}, next review {updated.next_review_date}"
        )
        return updated

    def to_dict(self) -> dict:
        current = self.current
        return {
            "session_id": self.id,
            "current": current.to_dict() if current else None,
            "remaining": self.remaining,
            "reviewed": self.reviewed,
            "finished": self.is_finished,
        }


class ReviewSessionRegistry:
    """Open review sessions, keyed by session id.

    Opening a session prunes the others that are finished or have not been
    looked up for `ttl_seconds`.
    """

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, ReviewSession] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def open(self, store: CardStore, today=None) -> ReviewSession:
        session = ReviewSession.start(store, today)
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._sessions[session.id] = session
            self._last_seen[session.id] = now
        return session

    def get(self, session_id: str) -> Optional[ReviewSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            now = self._clock()
            if now - self._last_seen[session_id] > self.ttl_seconds:
                self._drop(session_id)
                return None
            self._last_seen[session_id] = now
            return session

    def close(self, session_id: str) -> bool:
        """Abandon a session. Nothing is written; returns False if unknown."""
        with self._lock:
            return self._drop(session_id)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._last_seen.clear()

    def _drop(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    def _prune(self, now: float) -> None:
        stale = [
            sid
            for sid, session in self._sessions.items()
            if session.is_finished or now - self._last_seen[sid] > self.ttl_seconds
        ]
        for sid in stale:
            self._drop(sid)
        if stale:
            logger.info(f"Pruned {len(stale)} finished or idle review sessions")
