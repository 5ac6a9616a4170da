"""Services package for SnapVocab."""

from .cards import Card, ReviewFields, ReviewStage
from .card_store import (
    CardStore,
    InMemoryCardStore,
    SqlAlchemyCardStore,
    StorageError,
    CardNotFoundError,
)
from .review_queue import ReviewQueue, EmptyQueueError
from .review_session import ReviewSession, ReviewSessionRegistry

__all__ = [
    "Card",
    "ReviewFields",
    "ReviewStage",
    "CardStore",
    "InMemoryCardStore",
    "SqlAlchemyCardStore",
    "StorageError",
    "CardNotFoundError",
    "ReviewQueue",
    "EmptyQueueError",
    "ReviewSession",
    "ReviewSessionRegistry",
]
