"""
CLI script for firing due repetition rules.

Usage:
    # Fire every due rule (meant to be run every minute by cron)
    uv run python -m repetition.scheduler

    # Pretend it is a specific time
    uv run python -m repetition.scheduler --now "2009-11-04 12:02"

    # Dry run (list what would fire, write and send nothing)
    uv run python -m repetition.scheduler --dry-run
"""

import argparse
import sys
from dataclasses import dataclass, field

from pydantic import ValidationError

from models import RepetitionRule
from models.types import EpochMillis, RuleRow
from notifications.error_logger import log_repetition_error
from repetition.catchup import compute_next, seed_next_active
from repetition.context import RepetitionContext
from repetition.digest_builder import process
from repetition.errors import ConfigurationError, RepetitionBatchError
from repetition.repository import SupabaseRepetitionRepository
from shared.clock import MockClock, SystemClock
from shared.db import get_supabase_client
from shared.utils import format_millis, parse_date_string, print_summary, to_millis


@dataclass
class RunResult:
    """Outcome of one scheduler run."""

    success_count: int = 0
    skipped_count: int = 0
    failed_rule_uuids: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def failed_count(self) -> int:
        return len(self.failed_rule_uuids)

    def raise_for_errors(self) -> None:
        """Raise RepetitionBatchError if any rule failed."""
        if self.errors:
            raise RepetitionBatchError(self.errors)


def run_once(context: RepetitionContext) -> RunResult:
    """
    Fire every due repetition rule once.

    A rule that fails is recorded in the result and the run moves on to the
    next rule. Failed rules keep their next_active, so the next run retries
    them.

    Args:
        context: Repository, clock and notifier for this run

    Returns:
        RunResult with per-rule outcomes

    Raises:
        PersistenceError: If the due rules could not be loaded at all
    """
    now = to_millis(context.clock.now())
    print(f"Processing repetition rules due at {format_millis(now)}")

    rows = context.repository.find_due_rules(now)
    result = RunResult()

    if not rows:
        print("No repetition rules due.")
        return result

    print(f"Found {len(rows)} due rule(s)")

    for row in rows:
        rule_uuid = str(row.get("uuid") or row.get("id") or "unknown")
        print(f"\nProcessing rule {rule_uuid}...")

        try:
            rule = _parse_rule(row)
            if context.dry_run:
                _report_dry_run(rule, now)
                result.skipped_count += 1
                continue
            created = process(context, rule, now)
        except Exception as e:
            result.failed_rule_uuids.append(rule_uuid)
            result.errors[rule_uuid] = str(e)
            error_file = log_repetition_error(
                error_type="processing",
                error_message=str(e),
                context={
                    "rule_uuid": rule_uuid,
                    "user_id": row.get("user_id"),
                    "next_active": row.get("next_active"),
                    "now": now,
                    "exception": type(e).__name__,
                },
            )
            print(f"  ✗ Could not process rule {rule_uuid}: {e}")
            print(f"    Error details logged to: {error_file}")
            continue

        if created:
            result.success_count += 1
        else:
            result.skipped_count += 1

    return result


def reschedule_rule(context: RepetitionContext, rule: RepetitionRule) -> EpochMillis:
    """
    Re-anchor a rule's next_active on its hour:minute.

    Used when a rule is created, re-enabled or its schedule is edited, so it
    does not fire for the time it spent disabled. last_active is kept.

    Returns:
        The new next_active

    Raises:
        ConfigurationError: If the schedule is invalid
        PersistenceError: If the update failed
    """
    next_active = seed_next_active(
        rule.hour, rule.minute, rule.frequency, context.clock.now()
    )
    if not context.repository.advance_rule(rule, rule.last_active, next_active):
        print(f"  ⚠️  Rule {rule.uuid} changed while rescheduling, left as is")
        return rule.next_active

    print(f"  ✓ Rule {rule.uuid} next fires at {format_millis(next_active)}")
    return next_active


def _parse_rule(row: RuleRow) -> RepetitionRule:
    try:
        return RepetitionRule.model_validate(row)
    except ValidationError as e:
        raise ConfigurationError(f"invalid repetition rule: {e}") from e


def _report_dry_run(rule: RepetitionRule, now: EpochMillis) -> None:
    last_active, next_active = compute_next(rule, now)
    print(
        f"  [DRY RUN] Would fire rule {rule.uuid} ({rule.title}) for "
        f"{format_millis(last_active)}, next at {format_millis(next_active)}"
    )


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Fire due repetition rules")

    parser.add_argument(
        "--now",
        type=str,
        help="Run as if it were this time (any date format, UTC if no zone given)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run mode (don't create digests or send emails)",
    )

    args = parser.parse_args()

    if args.now:
        now = parse_date_string(args.now)
        if now is None:
            parser.error(f"Could not parse --now value: {args.now}")
        clock = MockClock(now)
    else:
        clock = SystemClock()

    context = RepetitionContext(
        repository=SupabaseRepetitionRepository(get_supabase_client()),
        clock=clock,
        dry_run=args.dry_run,
    )

    result = run_once(context)
    print_summary(result.success_count, result.skipped_count, result.failed_count)

    if result.failed_rule_uuids:
        sys.exit(1)


if __name__ == "__main__":
    main()
