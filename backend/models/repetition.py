"""Pydantic models for repetition rules and the digests they produce."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from models.types import (
    BookUUID,
    BookUUIDList,
    DigestID,
    EpochMillis,
    NoteID,
    RuleID,
    UserID,
)


class BookDomain(str, Enum):
    """Which of the user's books a rule draws notes from."""

    ALL = "all"
    INCLUDING = "including"
    EXCLUDING = "excluding"


class RepetitionRule(BaseModel):
    """User-defined rule for a recurring note digest."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: RuleID
    uuid: str = Field(..., min_length=1)
    user_id: UserID
    title: str = Field(..., min_length=1)
    enabled: bool = True
    frequency: EpochMillis = Field(..., gt=0)
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)
    last_active: EpochMillis = Field(0, ge=0)
    next_active: EpochMillis = Field(..., ge=0)
    book_domain: BookDomain = BookDomain.ALL
    books: BookUUIDList = Field(default_factory=list)
    note_count: int = Field(20, gt=0)


class Book(BaseModel):
    """A user's notebook."""

    uuid: BookUUID
    user_id: UserID
    label: str = Field(..., min_length=1)


class Note(BaseModel):
    """A note as read for digest selection (never written here)."""

    id: NoteID
    uuid: str
    user_id: UserID
    book_uuid: BookUUID
    body: str = ""
    created_at: datetime | None = None


class Digest(BaseModel):
    """One firing of a repetition rule.

    note_ids keeps the order in which the notes were selected.
    """

    id: DigestID
    uuid: str
    rule_id: RuleID
    user_id: UserID
    version: int = Field(1, ge=1)
    note_ids: list[NoteID] = Field(default_factory=list)
    created_at: datetime | None = None


class Account(BaseModel):
    """Email settings of the user that owns a rule."""

    user_id: UserID
    email: str = Field(..., pattern=r"^[^@]+@[^@]+\.[^@]+$")
    email_verified: bool = False
