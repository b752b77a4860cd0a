"""Shared fixtures for unit tests.

Provides a scripted invoker so orchestrator and façade tests never touch the network.
"""

import json

import pytest

from fridgechef.models.models import ErrorKind, Outcome, ProviderCandidate, TaskKind


class ScriptedInvoker:
    """Invoker that answers each backend_id with a pre-scripted Outcome.

    Records every (candidate, payload) call so tests can assert which
    candidates were invoked and in what order.
    """

    def __init__(self, script: dict[str, Outcome]) -> None:
        self.script = script
        self.calls = []

    @property
    def called_ids(self) -> list[str]:
        return [candidate.backend_id for candidate, _ in self.calls]

    async def invoke(self, candidate, payload):
        self.calls.append((candidate, payload))
        return self.script.get(
            candidate.backend_id,
            Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"no script for {candidate.backend_id}"),
        )


@pytest.fixture
def make_invoker():
    """Factory fixture: make_invoker({"a": Outcome.success("...")})."""
    return ScriptedInvoker


@pytest.fixture
def text_candidates():
    return [ProviderCandidate(backend_id=name, task_kind=TaskKind.TEXT) for name in ("a", "b", "c")]


@pytest.fixture
def vision_candidates():
    return [ProviderCandidate(backend_id=name, task_kind=TaskKind.VISION) for name in ("va", "vb")]


@pytest.fixture
def ingredients_text():
    """Model output with prose around a valid ingredient array."""
    return (
        "Sure! Here is what I can see in your fridge:\n```json\n"
        + json.dumps([{"name": "Milk", "quantity": "1 carton", "expiry_status": "soon"}, {"name": "Eggs"}])
        + "\n```\nLet me know if you need anything else."
    )


@pytest.fixture
def recipe_text():
    """Model output with a complete recipe object."""
    return json.dumps(
        {
            "title": "Spinach Omelette",
            "ingredients": ["2 eggs", "1 cup spinach"],
            "instructions": ["Whisk the eggs", "Cook with spinach"],
            "health_score": 8,
            "health_reasoning": "High protein, plenty of greens",
            "magic_spice": "Smoked paprika",
            "magic_spice_reasoning": "Adds depth",
            "search_query": "spinach omelette recipe",
        }
    )
