"""Database package for SnapVocab."""

from .connection import init_database, get_db_dependency

__all__ = [
    "init_database",
    "get_db_dependency",
]
