from __future__ import annotations

import json
from typing import List

import httpx
import openai
import pytest

from datenight.core.context import get_generation_id
from datenight.schemas.profile import ProfileContext
from datenight.services import date_suggestions
from datenight.services.date_suggestions import generate, generate_for_profile, persist_batch
from datenight.services.errors import EmptyBatch, GenerationUnavailable, ProfileMissing
from datenight.services.model_gateway import ModelGateway
from datenight.services.response_normalizer import START_TIME_POOLS
from datenight.services.suggestion_store import InMemorySuggestionStore


def _envelope(items) -> str:
    content = items if isinstance(items, str) else "```json\n" + json.dumps(items) + "\n```"
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})


class _FakeGateway:
    def __init__(self, body: str):
        self.body = body
        self.prompts: List[str] = []
        self.generation_ids: List[str | None] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.generation_ids.append(get_generation_id())
        return self.body


class _FailingGateway:
    def complete(self, prompt: str) -> str:
        raise GenerationUnavailable("Model call failed: connection refused")


EXTENDED_REPLY = [
    {
        "title": "Morning Hike at Lands End",
        "description": "Scenic coastal trail with Golden Gate views",
        "estimated_cost": "Free",
        "location": "Lands End Trail, San Francisco",
        "category": "outdoor",
        "recommended_start_time": "9:00 AM",
        "duration": "2",
        "sequence": 1,
    },
    {
        "title": "Brunch then art",
        "description": "Brunch at Zazie followed by Modern art at SFMOMA.",
        "estimated_cost": "$45",
        "location": "Zazie, Cole Valley & SFMOMA, 151 3rd St",
        "category": "dining",
        "recommended_start_time": "11:30 AM, 2:00 PM",
        "duration": "4",
        "sequence": "2, 3",
    },
]


def _extended_context() -> ProfileContext:
    return ProfileContext(name="Alex", location="San Francisco, CA", duration_window="extended")


def test_generate_runs_the_pipeline_once() -> None:
    gateway = _FakeGateway(_envelope(EXTENDED_REPLY))

    batch = generate(_extended_context(), gateway=gateway)

    assert len(gateway.prompts) == 1
    assert "suggest 3 unique" in gateway.prompts[0]
    assert [s.title for s in batch] == ["Morning Hike at Lands End", "Brunch at Zazie", "Modern art at SFMOMA"]
    assert [s.sequence for s in batch] == [1, 2, 3]
    assert [s.parent_sequence for s in batch] == [None, 1, 1]
    assert [s.category for s in batch] == ["outdoor", "dining", "cultural"]
    assert [s.location for s in batch] == [
        "Lands End Trail, San Francisco",
        "Zazie, Cole Valley",
        "SFMOMA, 151 3rd St",
    ]
    assert [s.budget for s in batch] == ["free", "low", "low"]
    assert batch.total_duration == 6.0


def test_generation_id_is_bound_during_the_call_only() -> None:
    gateway = _FakeGateway(_envelope(EXTENDED_REPLY))

    generate(_extended_context(), gateway=gateway)

    assert gateway.generation_ids[0]
    assert get_generation_id() is None


def test_category_filter_reaches_the_prompt() -> None:
    gateway = _FakeGateway(_envelope([]))

    generate(ProfileContext(), "relaxation", gateway=gateway)

    assert "relaxation category" in gateway.prompts[0]


def test_malformed_payload_returns_an_empty_batch() -> None:
    batch = generate(ProfileContext(), gateway=_FakeGateway(_envelope("Sorry, I can't help with that [")))

    assert batch.is_empty


def test_injected_start_time_source_is_used() -> None:
    reply = [{"title": "Tasting menu", "category": "dining", "estimated_cost": "$120"}]

    [suggestion] = generate(
        ProfileContext(),
        gateway=_FakeGateway(_envelope(reply)),
        pick_start_time=lambda category: START_TIME_POOLS[category][-1],
    )

    assert suggestion.recommended_start_time == "7:30 PM"
    assert suggestion.budget == "high"
    assert suggestion.duration is None


def test_gateway_failure_propagates() -> None:
    with pytest.raises(GenerationUnavailable):
        generate(ProfileContext(), gateway=_FailingGateway())


def test_missing_context_is_rejected_before_any_call() -> None:
    gateway = _FakeGateway(_envelope([]))

    with pytest.raises(ProfileMissing):
        generate(None, gateway=gateway)
    assert gateway.prompts == []


def test_default_gateway_is_built_from_settings(monkeypatch) -> None:
    created = []

    class _Recorder(_FakeGateway):
        def __init__(self):
            super().__init__(_envelope([]))
            created.append(self)

    monkeypatch.setattr(date_suggestions, "ModelGateway", _Recorder)

    generate(ProfileContext())

    assert len(created) == 1
    assert len(created[0].prompts) == 1


def test_generate_for_profile_reads_stored_profile() -> None:
    gateway = _FakeGateway(_envelope([]))

    generate_for_profile({"name": "Jo", "duration_preference": 3, "interests": "- jazz\n"}, gateway=gateway)

    assert "Name: Jo" in gateway.prompts[0]
    assert "Interests: jazz" in gateway.prompts[0]
    assert "suggest 3 unique" in gateway.prompts[0]

    with pytest.raises(ProfileMissing):
        generate_for_profile(None, gateway=gateway)


def test_end_to_end_through_openai_client() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=_envelope(EXTENDED_REPLY[:1]), headers={"content-type": "application/json"})

    client = openai.OpenAI(
        api_key="test-key",
        base_url="https://llm.test/v1",
        max_retries=0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    batch = generate(ProfileContext(name="Alex"), gateway=ModelGateway(client))

    assert [s.title for s in batch] == ["Morning Hike at Lands End"]
    assert batch.root.duration == 2.0


def test_persist_batch_links_children_to_root_id() -> None:
    batch = generate(_extended_context(), gateway=_FakeGateway(_envelope(EXTENDED_REPLY)))
    store = InMemorySuggestionStore()

    ids = persist_batch(batch, store)

    assert ids == [1, 2, 3]
    assert [row.parent_id for row in store.rows] == [None, 1, 1]
    assert [row.id for row in store.children_of(1)] == [2, 3]
    assert store.rows[2].record["title"] == "Modern art at SFMOMA"


def test_persist_empty_batch_raises() -> None:
    batch = generate(ProfileContext(), gateway=_FakeGateway(_envelope([])))

    with pytest.raises(EmptyBatch):
        persist_batch(batch, InMemorySuggestionStore())


def test_deeply_nested_reply_returns_an_empty_batch() -> None:
    batch = generate(ProfileContext(), gateway=_FakeGateway(_envelope("[" * 100000)))

    assert batch.is_empty
