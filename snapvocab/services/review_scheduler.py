"""Fixed-interval spaced repetition scheduler for SnapVocab.

Each successful recall moves a card one stage up the interval table, so
the gap before the next review grows roughly along the forgetting curve:
1, 2, 4, 7, 15 and 30 days. Remembering a card at the last stage marks it
mastered, after which it never comes back for review. A card that was
not retained goes back to stage 0 and is due again tomorrow.

All date math is done on calendar days. Callers may pass a datetime for
`today`; its time of day is dropped before any comparison.
"""

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable, Optional

from .cards import Card, ReviewFields, ReviewStage, as_day

# Days until the next review, indexed by the stage a card has just reached
REVIEW_INTERVALS = (1, 2, 4, 7, 15, 30)

# Mastered cards are never due; the date is only kept for display
MASTERED_HORIZON_DAYS = 365

STATUS_DUE = "due"
STATUS_MASTERED = "mastered"
STATUS_LEARNING = "learning"


@dataclass
class ReviewPartition:
    """Cards split into three disjoint buckets, each in input order."""

    due: list[Card]
    mastered: list[Card]
    learning: list[Card]


def _today(today=None) -> date:
    if today is None:
        return date.today()
    return as_day(today)


def _stage_of(card: Card) -> ReviewStage:
    return card.review_stage if card.review_stage is not None else ReviewStage.NEW


def _next_review_of(card: Card, today: date) -> date:
    # Uninitialized cards behave like new ones: first due tomorrow
    if card.next_review_date is None:
        return today + timedelta(days=1)
    return card.next_review_date


def initialize(today=None) -> ReviewFields:
    """Review fields for a newly saved card.

    A new card is never due on the day it is saved.
    """
    today = _today(today)
    return ReviewFields(
        review_stage=ReviewStage.NEW,
        review_count=0,
        last_review_date=today,
        next_review_date=today + timedelta(days=1),
    )


def apply_defaults(card: Card, today=None) -> Card:
    """Fill in any missing review fields, keeping the ones already set."""
    fields = initialize(today)
    return replace(
        card,
        review_stage=card.review_stage if card.review_stage is not None else fields.review_stage,
        review_count=card.review_count if card.review_count is not None else fields.review_count,
        last_review_date=card.last_review_date or fields.last_review_date,
        next_review_date=card.next_review_date or fields.next_review_date,
    )


def remember(card: Card, today=None) -> Card:
    """Record a successful recall and schedule the next review.

    Advancing past the last interval marks the card mastered. Calling this
    on a card that is already mastered leaves it mastered.

    Args:
        card: The card being reviewed
        today: Day of the review (defaults to the current day)

    Returns:
        A new Card with updated review fields
    """
    today = _today(today)
    new_stage = _stage_of(card) + 1

    if new_stage >= len(REVIEW_INTERVALS):
        stage = ReviewStage.MASTERED
        next_review = today + timedelta(days=MASTERED_HORIZON_DAYS)
    else:
        stage = ReviewStage(new_stage)
        next_review = today + timedelta(days=REVIEW_INTERVALS[stage])

    return replace(
        card,
        review_stage=stage,
        next_review_date=next_review,
        review_count=(card.review_count or 0) + 1,
        last_review_date=today,
    )


def reset_progress(card: Card, today=None) -> Card:
    """Send a card back to the first stage, due again tomorrow.

    The review count is kept. Mastered cards can be reset too.
    """
    today = _today(today)
    return replace(
        card,
        review_stage=ReviewStage.NEW,
        next_review_date=today + timedelta(days=1),
        last_review_date=today,
    )


def is_due(card: Card, today=None) -> bool:
    """True if the card is not mastered and its review day has arrived."""
    if card.is_mastered:
        return False
    today = _today(today)
    return _next_review_of(card, today) <= today


def review_status(card: Card, today=None) -> str:
    """Classify one card as due, mastered or learning."""
    if card.is_mastered:
        return STATUS_MASTERED
    if is_due(card, today):
        return STATUS_DUE
    return STATUS_LEARNING


def partition(cards: Iterable[Card], today=None) -> ReviewPartition:
    """Split cards into due, mastered and learning in a single pass."""
    today = _today(today)
    result = ReviewPartition(due=[], mastered=[], learning=[])
    buckets = {
        STATUS_DUE: result.due,
        STATUS_MASTERED: result.mastered,
        STATUS_LEARNING: result.learning,
    }
    for card in cards:
        buckets[review_status(card, today)].append(card)
    return result


def next_upcoming_date(cards: Iterable[Card], today=None) -> Optional[date]:
    """Earliest review day among cards scheduled for the future."""
    today = _today(today)
    learning = partition(cards, today).learning
    if not learning:
        return None
    return min(_next_review_of(card, today) for card in learning)
