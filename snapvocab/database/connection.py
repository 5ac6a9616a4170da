"""Database connection and session management."""

import logging
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .models import Base

logger = logging.getLogger(__name__)

# Database configuration:
# 1. SNAPVOCAB_DATABASE_URL if set (PostgreSQL, SQLite, ...)
# 2. Local SQLite file (for development)
DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "snapvocab.db"
DATABASE_URL = os.environ.get("SNAPVOCAB_DATABASE_URL") or f"sqlite:///{DEFAULT_DB_PATH}"

# Fix URL scheme for SQLAlchemy 2.0 (some hosts hand out postgres://)
DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)


def create_db_engine(url: str):
    """Create an engine, allowing SQLite connections across threads."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(url, pool_pre_ping=True, echo=False)


engine = create_db_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _describe(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


def init_database():
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at {_describe(DATABASE_URL)}")


def get_db_dependency():
    """Yield one session per request; the card store is built on top of it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
