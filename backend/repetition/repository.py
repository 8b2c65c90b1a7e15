"""
Database access for the repetition scheduler.

The scheduler only needs a handful of narrow operations, described by the
RepetitionRepository protocol. SupabaseRepetitionRepository implements them
on top of the Supabase client.

Firing a rule is done by the `fire_repetition_rule` Postgres function so the
digest insert, its ordered note links and the rule's timestamp update commit
together. The function takes:

    p_rule_id               rule to fire
    p_expected_next_active  next_active the scheduler saw when it loaded the rule
    p_last_active           new last_active
    p_next_active           new next_active
    p_note_ids              selected note ids, in selection order

It updates the rule only `WHERE id = p_rule_id AND next_active =
p_expected_next_active`. When no row matches (another run fired the rule
first) it returns no rows and creates nothing. Otherwise it returns the new
digest row, whose version is the rule's digest count after the insert.
"""

from typing import Any, Iterable, Optional, Protocol

from pydantic import ValidationError
from supabase import Client

from models import Account, BookDomain, Digest, Note, RepetitionRule
from models.types import BookUUID, EpochMillis, RuleRow, UserID
from repetition.errors import PersistenceError

NOTE_COLUMNS = "id, uuid, user_id, book_uuid, body, created_at"


class RepetitionRepository(Protocol):
    """Persistence operations used by the scheduler."""

    def find_due_rules(self, now: EpochMillis) -> list[RuleRow]:
        """Raw rows of enabled rules with next_active <= now."""
        ...

    def find_eligible_notes(
        self, user_id: UserID, domain: BookDomain, book_uuids: Iterable[BookUUID]
    ) -> list[Note]:
        """Notes the domain allows, in creation order."""
        ...

    def create_digest(
        self,
        rule: RepetitionRule,
        notes: list[Note],
        last_active: EpochMillis,
        next_active: EpochMillis,
    ) -> Optional[Digest]:
        """Create a digest and advance the rule in one unit.

        Returns None when the rule was already advanced by someone else.
        """
        ...

    def advance_rule(
        self, rule: RepetitionRule, last_active: EpochMillis, next_active: EpochMillis
    ) -> bool:
        """Move a rule's timestamps if they still match what the caller loaded."""
        ...

    def find_account(self, user_id: UserID) -> Optional[Account]:
        """Email settings for the owner of a rule."""
        ...


class SupabaseRepetitionRepository:
    """RepetitionRepository backed by Supabase tables."""

    def __init__(self, client: Client):
        self.client = client

    def find_due_rules(self, now: EpochMillis) -> list[RuleRow]:
        try:
            response = (
                self.client.table("repetition_rules")
                .select("*, books:repetition_rule_books(book_uuid)")
                .eq("enabled", True)
                .lte("next_active", now)
                .order("next_active", desc=False)
                .order("id", desc=False)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Could not load due repetition rules: {e}") from e

        rows = []
        for row in response.data or []:
            row = dict(row)
            row["books"] = [link["book_uuid"] for link in row.get("books") or []]
            rows.append(row)
        return rows

    def find_eligible_notes(
        self, user_id: UserID, domain: BookDomain, book_uuids: Iterable[BookUUID]
    ) -> list[Note]:
        book_uuids = list(book_uuids)
        if domain == BookDomain.INCLUDING and not book_uuids:
            return []

        try:
            query = (
                self.client.table("notes")
                .select(NOTE_COLUMNS)
                .eq("user_id", user_id)
                .eq("deleted", False)
            )
            if domain == BookDomain.INCLUDING:
                query = query.in_("book_uuid", book_uuids)
            elif domain == BookDomain.EXCLUDING and book_uuids:
                query = query.not_.in_("book_uuid", book_uuids)

            response = (
                query.order("created_at", desc=False).order("id", desc=False).execute()
            )
        except Exception as e:
            raise PersistenceError(
                f"Could not load notes for user {user_id} ({domain.value}): {e}"
            ) from e

        return [Note.model_validate(row) for row in response.data or []]

    def create_digest(
        self,
        rule: RepetitionRule,
        notes: list[Note],
        last_active: EpochMillis,
        next_active: EpochMillis,
    ) -> Optional[Digest]:
        note_ids = [note.id for note in notes]
        try:
            response = self.client.rpc(
                "fire_repetition_rule",
                {
                    "p_rule_id": rule.id,
                    "p_expected_next_active": rule.next_active,
                    "p_last_active": last_active,
                    "p_next_active": next_active,
                    "p_note_ids": note_ids,
                },
            ).execute()
        except Exception as e:
            raise PersistenceError(
                f"Could not create digest for rule {rule.uuid}: {e}"
            ) from e

        row = _first_row(response.data)
        if row is None:
            return None
        return Digest.model_validate({**row, "note_ids": note_ids})

    def advance_rule(
        self, rule: RepetitionRule, last_active: EpochMillis, next_active: EpochMillis
    ) -> bool:
        try:
            response = (
                self.client.table("repetition_rules")
                .update({"last_active": last_active, "next_active": next_active})
                .eq("id", rule.id)
                .eq("next_active", rule.next_active)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Could not update rule {rule.uuid}: {e}") from e

        return bool(response.data)

    def find_account(self, user_id: UserID) -> Optional[Account]:
        try:
            response = (
                self.client.table("accounts")
                .select("user_id, email, email_verified")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Could not load account for user {user_id}: {e}") from e

        row = _first_row(response.data)
        if row is None:
            return None
        try:
            return Account.model_validate(row)
        except ValidationError as e:
            raise PersistenceError(f"Invalid account row for user {user_id}: {e}") from e


def _first_row(data: Any) -> Optional[dict[str, Any]]:
    """PostgREST returns either a list of rows or a single object."""
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data
