"""
Balanced note selection for digests.

Notes are grouped into one queue per book and drawn round-robin, one note
per book per round, so a book with many notes cannot crowd out the others.
"""

from collections import deque
from typing import Iterable

from models import Note, RepetitionRule
from models.types import BookUUID
from repetition.errors import ConfigurationError


class BookQueues:
    """Per-book FIFO queues of notes, drained in rotation.

    Books rotate in the order they first appear in the input; notes within a
    book keep their input (creation) order.
    """

    def __init__(self, notes: Iterable[Note]):
        self._queues: dict[BookUUID, deque[Note]] = {}
        for note in notes:
            self._queues.setdefault(note.book_uuid, deque()).append(note)

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._queues.values())

    @property
    def book_uuids(self) -> list[BookUUID]:
        return list(self._queues)

    def drain(self, limit: int) -> list[Note]:
        """Pop up to limit notes, one book at a time."""
        selected: list[Note] = []
        active = [queue for queue in self._queues.values() if queue]

        while active and len(selected) < limit:
            for queue in active:
                selected.append(queue.popleft())
                if len(selected) >= limit:
                    break
            active = [queue for queue in active if queue]

        return selected


def select_notes(notes: Iterable[Note], target_count: int) -> list[Note]:
    """
    Select a balanced subset of notes.

    Args:
        notes: Eligible notes in creation order
        target_count: Maximum number of notes to return

    Returns:
        min(target_count, len(notes)) notes in round-robin draw order

    Raises:
        ConfigurationError: If target_count is not positive
    """
    if target_count <= 0:
        raise ConfigurationError(f"note count must be positive, got {target_count}")

    return BookQueues(notes).drain(target_count)


def find_balanced_notes(repository, rule: RepetitionRule) -> list[Note]:
    """Read the notes a rule may draw from and pick its digest notes."""
    eligible = repository.find_eligible_notes(rule.user_id, rule.book_domain, rule.books)
    return select_notes(eligible, rule.note_count)
