from datetime import datetime, timedelta, timezone
from dateutil import parser as date_parser

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MILLISECOND = timedelta(milliseconds=1)


def parse_date_string(date_str: str) -> datetime | None:
    """Parse various date formats into a UTC datetime.

    Naive values are taken to be UTC.
    """
    if not date_str:
        return None
    try:
        dt = date_parser.parse(date_str, fuzzy=True)
    except (ValueError, OverflowError, TypeError):
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_millis(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // MILLISECOND


def from_millis(millis: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=millis)


def format_millis(millis: int) -> str:
    """Human readable form of an epoch-millisecond instant, for console output."""
    if not millis:
        return "never"
    return from_millis(millis).strftime("%Y-%m-%d %H:%M UTC")


def print_summary(fired: int, skipped: int, failed: int) -> None:
    """Print repetition run summary."""
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now()}] Repetition Run Complete!")
    print(f"{'=' * 60}")
    print(f"✓ Digests created: {fired}")
    print(f"⊘ Skipped (not fired): {skipped}")
    print(f"✗ Failed: {failed}")
    print(f"{'=' * 60}\n")
