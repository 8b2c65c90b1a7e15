"""Dependencies shared by one scheduler run."""

from dataclasses import dataclass
from typing import Any, Callable

from notifications.email_sender import send_digest_email
from repetition.repository import RepetitionRepository
from shared.clock import Clock

Notifier = Callable[..., dict[str, Any]]


@dataclass
class RepetitionContext:
    """
    What the scheduler needs from the outside world.

    Attributes:
        repository: Persistence operations
        clock: Source of the current time
        notifier: Called as notifier(user_email, rule, digest, notes); returns
            {'success': bool, ...} like send_digest_email
        dry_run: Report due rules without writing or sending anything
    """

    repository: RepetitionRepository
    clock: Clock
    notifier: Notifier = send_digest_email
    dry_run: bool = False
