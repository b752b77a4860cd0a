"""Ordered fallback across interchangeable model backends.

FallbackOrchestrator.run() walks the candidate list strictly in order, one
call at a time:

1. invoke the candidate
2. quota exhaustion   -> return it at once, remaining candidates untouched
3. other failure      -> next candidate
4. success            -> extract_json(shape) then normalize()
5. usable result      -> return it (first success wins, no comparison)
6. empty/None result  -> next candidate

An exhausted list (or an expired chain deadline) ends in
ALL_PROVIDERS_EXHAUSTED without partial data. Each attempt is reported to the
attempt hooks as an AttemptEvent.
"""

import time
from typing import Any, Callable, List, Optional, Sequence

from fridgechef.hooks.hooks import AttemptHook, emit_attempt, get_attempt_hooks
from fridgechef.models.models import (
    AttemptEvent,
    AttemptOutcome,
    ErrorKind,
    Outcome,
    ProviderCandidate,
    TaskPayload,
)
from fridgechef.providers.extractor import Shape, extract_json
from fridgechef.providers.invoker import Invoker
from fridgechef.utils.logger import logger

ALL_PROVIDERS_EXHAUSTED_MESSAGE = "All candidates are unavailable right now, please try again."

Normalizer = Callable[[Any], Any]


def is_usable(result: Any) -> bool:
    """None and empty lists are unusable; anything else is accepted."""
    if result is None:
        return False
    if isinstance(result, list):
        return len(result) > 0
    return True


class FallbackOrchestrator:
    """Runs a fallback chain against an injected invoker.

    Args:
        invoker: Object with `async invoke(candidate, payload) -> Outcome`.
        hooks: Attempt hooks. Defaults to get_attempt_hooks().
        deadline_seconds: Optional budget for the whole chain. Checked before
            starting each candidate; an in-flight call is bounded by the
            invoker's own timeout.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        invoker: Invoker,
        hooks: Optional[Sequence[AttemptHook]] = None,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.invoker = invoker
        self.hooks: List[AttemptHook] = list(hooks) if hooks is not None else get_attempt_hooks()
        self.deadline_seconds = deadline_seconds
        self.clock = clock

    def _report(
        self, candidate: ProviderCandidate, outcome: AttemptOutcome, started: float, message: Optional[str] = None
    ) -> None:
        elapsed_ms = max(0, int((self.clock() - started) * 1000))
        emit_attempt(
            self.hooks,
            AttemptEvent(candidate=candidate, outcome=outcome, elapsed_ms=elapsed_ms, message=message),
        )

    async def run(
        self,
        candidates: Sequence[ProviderCandidate],
        payload: TaskPayload,
        normalize: Normalizer,
        shape: Shape = "object",
    ) -> Outcome:
        """Try candidates in order until one yields a usable normalized result.

        Args:
            candidates: Ordered fallback chain.
            payload: Request content sent to every candidate.
            normalize: Pure function from extracted JSON to a domain value; None
                or [] means "unusable".
            shape: JSON shape to extract from the raw text ("array" or "object").

        Returns:
            Outcome with the first usable value, the QUOTA_EXHAUSTED failure that
            aborted the chain, or ALL_PROVIDERS_EXHAUSTED.
        """
        chain_started = self.clock()

        for index, candidate in enumerate(candidates, start=1):
            if self.deadline_seconds is not None and self.clock() - chain_started >= self.deadline_seconds:
                logger.warning(
                    f"Chain deadline of {self.deadline_seconds:g}s reached, "
                    f"skipping {len(candidates) - index + 1} remaining candidate(s)"
                )
                break

            logger.debug(f"Trying candidate {index}/{len(candidates)}: {candidate}")
            started = self.clock()
            response = await self.invoker.invoke(candidate, payload)

            if not response.ok:
                if response.is_fatal:
                    self._report(candidate, AttemptOutcome.QUOTA_EXHAUSTED, started, response.message)
                    return Outcome.failure(response.error_kind, response.message or "Quota exhausted")
                self._report(candidate, AttemptOutcome.PROVIDER_UNAVAILABLE, started, response.message)
                continue

            result = normalize(extract_json(response.value, shape))
            if is_usable(result):
                self._report(candidate, AttemptOutcome.ACCEPTED, started)
                return Outcome.success(result)

            preview = (response.value or "")[:120]
            self._report(candidate, AttemptOutcome.MALFORMED_RESPONSE, started, f"unusable output: {preview!r}")

        return Outcome.failure(ErrorKind.ALL_PROVIDERS_EXHAUSTED, ALL_PROVIDERS_EXHAUSTED_MESSAGE)
