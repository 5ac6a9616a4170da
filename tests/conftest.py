"""Shared fixtures for SnapVocab tests."""

import os
from datetime import date, datetime

# Keep the app module from pointing at the development database file
os.environ.setdefault("SNAPVOCAB_DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from snapvocab.database.models import Base
from snapvocab.services.cards import Card, ReviewStage
from snapvocab.services.card_store import InMemoryCardStore


@pytest.fixture
def day() -> date:
    """A fixed review day so date math is deterministic."""
    return date(2024, 3, 10)


@pytest.fixture
def make_card():
    """Factory for cards with explicit review fields."""

    def _make(word="apple", stage=ReviewStage.NEW, next_review=None, count=0, **kwargs):
        return Card(
            word=word,
            translation=kwargs.pop("translation", f"{word} (translated)"),
            example=kwargs.pop("example", f"I see an {word}."),
            image=kwargs.pop("image", f"https://img.example/{word}.jpg"),
            saved_at=kwargs.pop("saved_at", datetime(2024, 3, 1, 9, 30)),
            review_stage=stage,
            next_review_date=next_review,
            review_count=count,
            last_review_date=kwargs.pop("last_review", None),
            **kwargs,
        )

    return _make


@pytest.fixture
def memory_store() -> InMemoryCardStore:
    return InMemoryCardStore()


@pytest.fixture
def db_session():
    """SQLAlchemy session on a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
