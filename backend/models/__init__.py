"""Pydantic models for data validation and type checking."""

from models.repetition import (
    Account,
    Book,
    BookDomain,
    Digest,
    Note,
    RepetitionRule,
)

__all__ = [
    "Account",
    "Book",
    "BookDomain",
    "Digest",
    "Note",
    "RepetitionRule",
]
