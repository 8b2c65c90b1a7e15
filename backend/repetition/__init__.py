"""
Repetition scheduler for recurring note digests.

This module handles:
- Finding repetition rules that are due
- Catching up rules that missed firings while the scheduler was down
- Picking a balanced set of notes across the rule's books
- Creating the digest and advancing the rule in one step
- Emailing the digest to the rule's owner
"""

from .catchup import compute_next, seed_next_active, validate_schedule
from .context import RepetitionContext
from .digest_builder import process
from .note_selector import BookQueues, select_notes
from .scheduler import RunResult, reschedule_rule, run_once

__all__ = [
    'BookQueues',
    'RepetitionContext',
    'RunResult',
    'compute_next',
    'process',
    'reschedule_rule',
    'run_once',
    'seed_next_active',
    'select_notes',
    'validate_schedule',
]
