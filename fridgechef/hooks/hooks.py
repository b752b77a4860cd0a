"""Attempt hooks for the fallback orchestrator.

The orchestrator emits one AttemptEvent per candidate it tries. Hooks receive
those events synchronously, in registration order.

Hook Pipeline (default):
1. log_attempt_hook - Logs the attempt with candidate/outcome/elapsed_ms extras

Hooks must not break a request: an exception raised by a hook is logged and the
remaining hooks still run.
"""

import logging
from typing import Callable, Iterable, List

from fridgechef.models.models import AttemptEvent, AttemptOutcome
from fridgechef.utils.logger import logger

AttemptHook = Callable[[AttemptEvent], None]


def log_attempt_hook(event: AttemptEvent) -> None:
    """Log one candidate attempt at a level matching its outcome."""
    extra = {
        "candidate": event.candidate.backend_id,
        "outcome": event.outcome.value,
        "elapsed_ms": event.elapsed_ms,
    }
    text = f"Attempt {event.candidate}: {event.outcome.value} in {event.elapsed_ms}ms"
    if event.message:
        text += f" ({event.message})"

    level = logging.WARNING if event.outcome == AttemptOutcome.QUOTA_EXHAUSTED else logging.INFO
    logger.log(level, text, extra=extra)


class AttemptRecorder:
    """Hook that keeps every event, for callers that want the attempt trail."""

    def __init__(self) -> None:
        self.events: List[AttemptEvent] = []

    def __call__(self, event: AttemptEvent) -> None:
        self.events.append(event)

    @property
    def backend_ids(self) -> List[str]:
        return [event.candidate.backend_id for event in self.events]


def emit_attempt(hooks: Iterable[AttemptHook], event: AttemptEvent) -> None:
    """Deliver `event` to every hook; a failing hook is logged and skipped."""
    for hook in hooks:
        try:
            hook(event)
        except Exception as e:
            logger.warning(f"Attempt hook {getattr(hook, '__name__', hook)!r} failed: {e}")


def get_attempt_hooks() -> List[AttemptHook]:
    """Get the default attempt hooks.

    Returns:
        List of hook callables, in execution order.
    """
    return [log_attempt_hook]
