import json

import httpx
import pytest

from neuroplan.gemini_breakdown import (
    BreakdownFailed,
    BreakdownOk,
    GeminiClient,
    GeminiClientConfig,
    GeminiError,
    parse_steps,
)
from neuroplan.models import BrainState


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_breakdown_parses_json_response():
    seen = {}

    def handler(request: httpx.Request):
        seen["prompt"] = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        seen["key"] = request.url.params["key"]
        return httpx.Response(200, json=_reply('{"steps": ["Open the laptop", "Write one sentence"]}'))

    transport = httpx.MockTransport(handler)
    client = GeminiClient(GeminiClientConfig(api_key="test-key"), transport=transport)
    low = BrainState(id=None, user_id=1, day="2025-01-01", energy=2, focus=2, mood=4)
    result = client.breakdown_task("Write report", low)
    assert result == BreakdownOk(steps=("Open the laptop", "Write one sentence"))
    assert "Write report" in seen["prompt"]
    assert "under 5 minutes" in seen["prompt"]
    assert seen["key"] == "test-key"


def test_rate_limit_retry():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        if calls["n"] < 2:
            return httpx.Response(429, text="Too Many Requests")
        return httpx.Response(200, json=_reply('["Step one"]'))

    transport = httpx.MockTransport(handler)
    client = GeminiClient(GeminiClientConfig(api_key="k", max_retries=2, backoff_base=0.01), transport=transport)
    result = client.breakdown_task("Random", None)  # should retry once
    assert result == BreakdownOk(steps=("Step one",))
    assert calls["n"] == 2


def test_failure_after_retries_is_tagged():
    def handler(request: httpx.Request):
        return httpx.Response(500, text="Server Error")

    transport = httpx.MockTransport(handler)
    client = GeminiClient(GeminiClientConfig(api_key="k", max_retries=1, backoff_base=0.01), transport=transport)
    assert client.breakdown_task("Title", None) == BreakdownFailed(kind="unavailable")
    with pytest.raises(GeminiError):
        client.generate("hello")


def test_rate_limit_exhausted_is_tagged():
    transport = httpx.MockTransport(lambda request: httpx.Response(429))
    client = GeminiClient(GeminiClientConfig(api_key="k", max_retries=0), transport=transport)
    assert client.breakdown_task("Title", None) == BreakdownFailed(kind="rate_limited")


def test_transport_error_is_unavailable():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("offline", request=request)

    transport = httpx.MockTransport(handler)
    client = GeminiClient(GeminiClientConfig(api_key="k", max_retries=0), transport=transport)
    assert client.breakdown_task("Title", None) == BreakdownFailed(kind="unavailable")


def test_missing_key_makes_no_request():
    def handler(request: httpx.Request):  # pragma: no cover - must not be called
        raise AssertionError("request sent without key")

    client = GeminiClient(GeminiClientConfig(api_key="", max_retries=0), transport=httpx.MockTransport(handler))
    assert client.breakdown_task("Title", None) == BreakdownFailed(kind="missing_key")


def test_empty_output_is_invalid_response():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=_reply("Sorry, I can't help.")))
    client = GeminiClient(GeminiClientConfig(api_key="k"), transport=transport)
    assert client.breakdown_task("Title", None) == BreakdownFailed(kind="invalid_response")


def test_parse_steps_variants():
    assert parse_steps('Sure!\n["  Find   keys ", "", "Leave"]') == ["Find keys", "Leave"]
    assert parse_steps('[{"step": "Boil water"}, {"text": "Add pasta"}, 3]') == ["Boil water", "Add pasta"]
    assert parse_steps("1. Stand up\n2) Stretch\n- Breathe\nnot a step") == ["Stand up", "Stretch", "Breathe"]
    assert parse_steps("") == []


def test_parse_steps_limits():
    many = json.dumps([f"step {i}" for i in range(25)])
    assert len(parse_steps(many)) == 10
    assert len(parse_steps(json.dumps(["x" * 500]))[0]) == 200


@pytest.mark.parametrize("status, kind", [(403, "missing_key"), (401, "missing_key"), (400, "unavailable")])
def test_client_errors_are_not_retried(status, kind):
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        return httpx.Response(status, text="nope")

    transport = httpx.MockTransport(handler)
    client = GeminiClient(GeminiClientConfig(api_key="revoked", max_retries=3, backoff_base=0.01), transport=transport)
    assert client.breakdown_task("Title", None) == BreakdownFailed(kind=kind)
    assert calls["n"] == 1
