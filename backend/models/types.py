"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing UserID where RuleID expected).

Uses TypeAlias for types that are purely structural.
"""

from typing import NewType, TypeAlias

# ID types using NewType for type safety
RuleID = NewType("RuleID", int)
DigestID = NewType("DigestID", int)
NoteID = NewType("NoteID", int)
UserID = NewType("UserID", str)
BookUUID = NewType("BookUUID", str)

# Structural aliases using TypeAlias
EpochMillis: TypeAlias = int  # milliseconds since 1970-01-01T00:00:00Z
BookUUIDList: TypeAlias = list[BookUUID]
RuleRow: TypeAlias = dict  # raw repetition_rules row as returned by Supabase
