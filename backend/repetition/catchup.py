"""
Next-firing computation for repetition rules.

A rule fires at a scheduled instant, never at the time the scheduler
happened to poll: the latest boundary next_active + k * frequency that is
not after the current time. After firing, next_active moves forward by whole
multiples of the rule's frequency until it is strictly after the current
time, so any number of missed periods collapse into a single firing.
"""

from datetime import datetime, timezone

from models import RepetitionRule
from models.types import EpochMillis
from repetition.errors import ConfigurationError
from shared.utils import to_millis


def validate_schedule(frequency: int, hour: int, minute: int) -> None:
    """
    Check that a rule's schedule can be computed.

    Raises:
        ConfigurationError: If frequency is not positive or the anchor is not
            a valid time of day
    """
    if frequency <= 0:
        raise ConfigurationError(f"frequency must be positive, got {frequency}")
    if not 0 <= hour <= 23:
        raise ConfigurationError(f"hour must be between 0 and 23, got {hour}")
    if not 0 <= minute <= 59:
        raise ConfigurationError(f"minute must be between 0 and 59, got {minute}")


def compute_next(
    rule: RepetitionRule, now: EpochMillis
) -> tuple[EpochMillis, EpochMillis]:
    """
    Compute the timestamps a due rule moves to when it fires.

    Args:
        rule: Rule with next_active <= now
        now: Current instant in epoch milliseconds

    Returns:
        Tuple of (new last_active, new next_active). The new next_active is
        the first next_active + k * frequency (k >= 1) strictly after now; the
        new last_active is the boundary one frequency before it, i.e. the
        latest scheduled instant at or before now. Without missed periods
        that is the rule's current next_active.

    Raises:
        ConfigurationError: If the rule's frequency is not positive
        ValueError: If the rule is not due yet. Callers filter with
            digest_builder.is_due first, where a rule that is not due is a
            no-op, so this only guards direct misuse.
    """
    if rule.frequency <= 0:
        raise ConfigurationError(
            f"rule {rule.uuid} has invalid frequency {rule.frequency}"
        )
    if rule.next_active > now:
        raise ValueError(f"rule {rule.uuid} is not due until {rule.next_active}")

    # Same result as adding frequency until past now, without looping
    # through every missed period.
    periods = (now - rule.next_active) // rule.frequency + 1
    next_active = rule.next_active + periods * rule.frequency

    return next_active - rule.frequency, next_active


def seed_next_active(
    hour: int, minute: int, frequency: int, now: datetime
) -> EpochMillis:
    """
    Compute the first next_active for a new or re-enabled rule.

    The anchor is today's hour:minute in UTC. If that has already passed, it
    is pushed forward by frequency until it is strictly in the future.
    """
    validate_schedule(frequency, hour, minute)

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    anchor = to_millis(now.replace(hour=hour, minute=minute, second=0, microsecond=0))
    now_ms = to_millis(now)
    if anchor > now_ms:
        return anchor

    periods = (now_ms - anchor) // frequency + 1
    return anchor + periods * frequency
