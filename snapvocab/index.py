"""SnapVocab API

FastAPI application for the photo vocabulary word bank:
- Saving, listing, importing and deleting word cards
- Spaced repetition review summary
- Interactive review sessions (remember / not yet / skip for now)
- Request metrics and rate limiting
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from dotenv import load_dotenv

load_dotenv()

from .database import init_database, get_db_dependency
from .rate_limit import limiter, CARD_WRITE_LIMIT
from .services.cards import Card
from .services.card_store import (
    CardStore,
    SqlAlchemyCardStore,
    StorageError,
    CardNotFoundError,
)
from .services.monitoring import metrics, normalize_path
from .services.review_queue import EmptyQueueError
from .services.review_scheduler import review_status
from .services.review_session import ReviewSession, ReviewSessionRegistry
from .services.wordbook import (
    add_card,
    count_saved_on,
    import_entries,
    newest_first,
    delete_card,
    clear_cards,
    review_summary,
)

logging.basicConfig(
    level=os.environ.get("SNAPVOCAB_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "SNAPVOCAB_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

# Open review passes, kept in memory (a pass is abandoned on restart)
review_sessions = ReviewSessionRegistry(
    ttl_seconds=float(os.environ.get("SNAPVOCAB_SESSION_TTL_SECONDS", "3600"))
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    init_database()
    yield


# Create FastAPI app
app = FastAPI(
    title="SnapVocab",
    description="Photo vocabulary word bank with spaced repetition review",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect request metrics for every HTTP request."""
    metrics.increment_active()
    start_time = time.time()
    try:
        response = await call_next(request)
        duration = time.time() - start_time
        path = normalize_path(request.url.path)
        metrics.record_request(request.method, path, response.status_code, duration)
        return response
    finally:
        metrics.decrement_active()


# ============== Dependencies ==============


def get_card_store(db: Session = Depends(get_db_dependency)) -> CardStore:
    """FastAPI dependency providing the word bank store for a request."""
    return SqlAlchemyCardStore(db)


def today() -> date:
    return date.today()


def storage_unavailable(e: StorageError) -> HTTPException:
    logger.error(f"Word bank storage error: {e}")
    return HTTPException(status_code=503, detail="Word bank storage is unavailable")


def get_session_or_404(session_id: str) -> ReviewSession:
    session = review_sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Review session not found")
    return session


# ============== Pydantic Models ==============


class CardCreate(BaseModel):
    word: str
    translation: str = ""
    example: str = ""
    image: str = ""  # URL or data URI
    saved_at: Optional[datetime] = None


class CardImport(BaseModel):
    cards: list[dict]


# ============== Health and Metrics ==============


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/metrics", response_class=PlainTextResponse)
async def get_metrics():
    """Prometheus text format metrics."""
    return metrics.to_prometheus(open_sessions=len(review_sessions))


# ============== Word Bank Endpoints ==============


def card_with_status(card: Card, day: date) -> dict:
    data = card.to_dict()
    data["status"] = review_status(card, day)
    return data


@app.get("/api/cards")
async def list_cards(store: CardStore = Depends(get_card_store)):
    """List every saved card, newest first, with its review status."""
    day = today()
    try:
        cards = newest_first(store.load_all())
    except StorageError as e:
        raise storage_unavailable(e)

    return {
        "cards": [card_with_status(c, day) for c in cards],
        "count": len(cards),
        "saved_today": count_saved_on(cards, day),
    }


@app.post("/api/cards")
@limiter.limit(CARD_WRITE_LIMIT)
async def create_card(
    request: Request,
    payload: CardCreate,
    store: CardStore = Depends(get_card_store),
):
    """Save a new card to the word bank. It is first due tomorrow."""
    word = payload.word.strip()
    if not word:
        raise HTTPException(status_code=400, detail="Word must not be empty")

    card = Card(
        word=word,
        translation=payload.translation,
        example=payload.example,
        image=payload.image,
    )
    if payload.saved_at:
        saved_at = payload.saved_at
        if saved_at.tzinfo is not None:
            saved_at = saved_at.astimezone(timezone.utc).replace(tzinfo=None)
        card.saved_at = saved_at

    day = today()
    try:
        card = add_card(store, card, day)
    except StorageError as e:
        raise storage_unavailable(e)

    return card_with_status(card, day)


@app.post("/api/cards/import")
@limiter.limit(CARD_WRITE_LIMIT)
async def import_cards(
    request: Request,
    payload: CardImport,
    store: CardStore = Depends(get_card_store),
):
    """Import cards exported from the browser word bank."""
    try:
        cards = import_entries(store, payload.cards, today())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise storage_unavailable(e)

    return {"imported": len(cards), "cards": [c.to_dict() for c in cards]}


@app.delete("/api/cards/{card_id}")
async def remove_card(card_id: str, store: CardStore = Depends(get_card_store)):
    """Delete one card."""
    try:
        card = delete_card(store, card_id)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")
    except StorageError as e:
        raise storage_unavailable(e)

    return {"deleted": card.id}


@app.delete("/api/cards")
async def remove_all_cards(store: CardStore = Depends(get_card_store)):
    """Delete every card in the word bank."""
    try:
        count = clear_cards(store)
    except StorageError as e:
        raise storage_unavailable(e)

    return {"deleted": count}


# ============== Review Endpoints ==============


@app.get("/api/review/summary")
async def get_review_summary(store: CardStore = Depends(get_card_store)):
    """Due, mastered and learning counts plus the next upcoming review day."""
    try:
        cards = store.load_all()
    except StorageError as e:
        raise storage_unavailable(e)

    return review_summary(cards, today()).to_dict()


@app.post("/api/review/sessions")
async def start_review_session(store: CardStore = Depends(get_card_store)):
    """Start a review pass over every card due today."""
    try:
        session = review_sessions.open(store, today())
    except StorageError as e:
        raise storage_unavailable(e)

    return session.to_dict()


@app.get("/api/review/sessions/{session_id}")
async def get_review_session(session_id: str):
    """Current card and remaining count for a review pass."""
    return get_session_or_404(session_id).to_dict()


def commit_decision(session: ReviewSession, decision: str, store: CardStore) -> dict:
    try:
        if decision == "remember":
            card = session.remember(store, today())
        else:
            card = session.reset(store, today())
    except EmptyQueueError:
        raise HTTPException(status_code=409, detail="No cards left in this session")
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card is no longer in the word bank")
    except StorageError as e:
        raise storage_unavailable(e)

    metrics.record_review(decision)
    result = session.to_dict()
    result["reviewed_card"] = card.to_dict()
    return result


@app.post("/api/review/sessions/{session_id}/remember")
async def remember_card(session_id: str, store: CardStore = Depends(get_card_store)):
    """The learner remembered the current card."""
    session = get_session_or_404(session_id)
    return commit_decision(session, "remember", store)


@app.post("/api/review/sessions/{session_id}/reset")
async def reset_card(session_id: str, store: CardStore = Depends(get_card_store)):
    """The learner has not retained the current card yet."""
    session = get_session_or_404(session_id)
    return commit_decision(session, "reset", store)


@app.post("/api/review/sessions/{session_id}/defer")
async def defer_card(session_id: str):
    """Skip the current card for now; it comes back later in this pass."""
    session = get_session_or_404(session_id)
    if session.is_finished:
        raise HTTPException(status_code=409, detail="No cards left in this session")

    session.defer()
    metrics.record_review("defer")
    return session.to_dict()


@app.delete("/api/review/sessions/{session_id}")
async def close_review_session(session_id: str):
    """Close a review pass. Decisions already made stay saved."""
    if not review_sessions.close(session_id):
        raise HTTPException(status_code=404, detail="Review session not found")
    return {"closed": session_id}
