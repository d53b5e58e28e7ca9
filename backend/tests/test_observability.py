"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib
from typing import Any, Dict, List

import pytest

from datenight.core.context import generation_scope
from datenight.observability import client as client_module
from datenight.observability import metrics
from datenight.observability import tracing
from datenight.schemas.profile import ProfileContext
from datenight.services.date_suggestions import generate


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.ended = False
        self.updates: List[Dict[str, Any]] = []

    def update(self, **kwargs: Any) -> None:
        self.updates.append(kwargs)

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


@pytest.fixture()
def dummy_client(monkeypatch) -> _DummyClient:
    client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)
    return client


def test_client_is_disabled_without_opik_settings(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import datenight.core.config as core_config

    importlib.reload(core_config)
    reloaded = importlib.reload(client_module)
    try:
        assert reloaded.get_opik_client() is None
    finally:
        reloaded.reset_opik_client()


def test_enabled_without_api_key_stays_disabled(monkeypatch) -> None:
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    client_module.reset_opik_client()
    try:
        assert client_module.init_opik() is None
    finally:
        client_module.reset_opik_client()


def test_trace_is_a_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    with tracing.trace("suggestions.test") as span:
        assert span is None


def test_log_metric_closes_trace(dummy_client) -> None:
    metrics.log_metric("demo_metric", 42, metadata={"foo": "bar"})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].name == "metric:demo_metric"
    assert dummy_client.traces[0].metadata["value"] == 42
    assert dummy_client.traces[0].metadata["foo"] == "bar"
    assert dummy_client.traces[0].ended is True


def test_trace_records_generation_id_and_errors(dummy_client) -> None:
    with generation_scope("gen-123"):
        with pytest.raises(RuntimeError):
            with tracing.trace("suggestions.failing", metadata={"step": "model"}):
                raise RuntimeError("boom")

    [span] = dummy_client.traces
    assert span.metadata == {"step": "model", "generation_id": "gen-123"}
    assert span.updates[0]["error_info"]["message"] == "boom"
    assert span.ended is True


def test_generate_emits_traces_and_metrics(dummy_client) -> None:
    class _Gateway:
        def complete(self, prompt: str) -> str:
            return '{"choices": [{"message": {"content": "[{\\"title\\": \\"Picnic\\"}, {}]"}}]}'

    batch = generate(ProfileContext(), gateway=_Gateway())

    names = [span.name for span in dummy_client.traces]
    assert len(batch) == 1
    assert "suggestions.generate" in names
    assert "metric:suggestions.items.dropped" in names
    assert "metric:suggestions.batch.size" in names
    generate_span = next(span for span in dummy_client.traces if span.name == "suggestions.generate")
    assert generate_span.updates[0]["output"]["count"] == 1
    assert "generation_id" in generate_span.metadata
    assert all(span.ended for span in dummy_client.traces)
