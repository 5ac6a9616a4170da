"""SnapVocab: photo vocabulary word bank with spaced repetition review."""

__version__ = "1.0.0"
