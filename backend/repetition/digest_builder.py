"""
Fires a single repetition rule.

Creating the digest and advancing the rule is one database operation, so a
rule can never fire twice for the same period nor lose a firing. The email
is sent afterwards; a failed email is logged but does not undo the digest.
"""

from models import Digest, Note, RepetitionRule
from models.types import EpochMillis
from notifications.error_logger import log_repetition_error
from repetition.catchup import compute_next
from repetition.context import RepetitionContext
from repetition.errors import PersistenceError
from repetition.note_selector import find_balanced_notes


def is_due(rule: RepetitionRule, now: EpochMillis) -> bool:
    """Enabled rules are due from next_active onward (inclusive)."""
    return rule.enabled and rule.next_active <= now


def process(context: RepetitionContext, rule: RepetitionRule, now: EpochMillis) -> bool:
    """
    Fire a rule if it is due.

    Args:
        context: Repository, clock and notifier for this run
        rule: Rule loaded at the start of the run
        now: Current instant in epoch milliseconds

    Returns:
        True if a digest was created, False if the rule was not due or
        another run fired it first

    Raises:
        ConfigurationError: If the rule's schedule or note count is invalid
        PersistenceError: If reading notes or writing the digest failed; the
            rule is left unchanged and is retried on the next run
    """
    if not is_due(rule, now):
        return False

    last_active, next_active = compute_next(rule, now)
    notes = find_balanced_notes(context.repository, rule)

    digest = context.repository.create_digest(rule, notes, last_active, next_active)
    if digest is None:
        print(f"  ⊘ Rule {rule.uuid} was already fired by another run")
        return False

    print(
        f"  ✓ Created digest #{digest.version} for rule {rule.uuid} "
        f"({len(notes)} notes)"
    )

    _notify(context, rule, digest, notes)
    return True


def _notify(
    context: RepetitionContext, rule: RepetitionRule, digest: Digest, notes: list[Note]
) -> None:
    """Send the digest email. Failures are logged, never raised."""
    try:
        account = context.repository.find_account(rule.user_id)
    except PersistenceError as e:
        error_file = log_repetition_error(
            error_type="sending",
            error_message=str(e),
            context={"rule_uuid": rule.uuid, "digest_uuid": digest.uuid},
        )
        print(f"    ⚠️  Could not load account, email not sent. Details logged to: {error_file}")
        return

    if account is None:
        print(f"    ⚠️  No account for user {rule.user_id}, email not sent")
        return

    if not account.email_verified:
        print(f"    ⊘ Email not verified for user {rule.user_id}, skipping email")
        return

    try:
        result = context.notifier(account.email, rule, digest, notes)
    except Exception as e:
        result = {"success": False, "error": str(e)}

    if result["success"]:
        print(f"    ✓ Sent digest email to user {rule.user_id}")
        return

    error_msg = result.get("error", "Unknown error")
    error_file = log_repetition_error(
        error_type="sending",
        error_message=error_msg,
        context={
            "rule_uuid": rule.uuid,
            "user_id": rule.user_id,
            "digest_uuid": digest.uuid,
            "digest_version": digest.version,
        },
    )
    print(f"    ✗ Failed to send digest email: {error_msg}")
    print(f"      Error details logged to: {error_file}")
