"""Tests for the AI gateway, its context and the live backends."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, cast

import httpx
import openai
import pytest
from openai import AsyncOpenAI

from inkpilot.ai.ai_types import GatewayResult, SearchResult
from inkpilot.ai.backends import GeminiBackend, OpenAIBackend, WebSearchBackend
from inkpilot.ai.context import AIContext, BusyTracker
from inkpilot.ai.errors import (
    ACCESS_DENIED_MESSAGE,
    INVALID_CREDENTIAL_MESSAGE,
    RATE_LIMIT_MESSAGE,
    ErrorKind,
    GatewayError,
)
from inkpilot.ai.gateway import DEMO_SEARCH_URL, AIGateway
from inkpilot.ai.prompts import ACTION_TEMPLATES, DEMO_REPLIES, ActionKind, DemoReply
from inkpilot.services.settings import Settings, SettingsStore, SecretVault
from inkpilot.ui.events import EventBus, LoadingChanged

from tests.helpers import FakeCompletionBackend, FakeSearchBackend, demo_gateway, live_gateway, live_settings


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ----------------------------------------------------------------------
# Demo mode
# ----------------------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("instruction", "reply"),
    [
        ("Please SHORTEN this", DemoReply.SHORTEN),
        ("lengthen it", DemoReply.LENGTHEN),
        ("fix grammar", DemoReply.GRAMMAR),
        ("make a table", DemoReply.TABLE),
        ("shorten into a table", DemoReply.SHORTEN),
        ("hello there", DemoReply.FALLBACK),
    ],
)
async def test_demo_completion_picks_reply_by_keyword(instruction: str, reply: DemoReply) -> None:
    gateway = demo_gateway()

    result = await gateway.complete(instruction, "some text")

    assert result.success
    assert result.value == DEMO_REPLIES[reply]


@pytest.mark.asyncio
async def test_demo_search_returns_single_mock_result() -> None:
    result = await demo_gateway().search("python asyncio")

    assert result.success
    assert len(result.value) == 1
    assert result.value[0].title == "Search results for: python asyncio"
    assert result.value[0].url == DEMO_SEARCH_URL


@pytest.mark.asyncio
async def test_demo_mode_setting_overrides_credential() -> None:
    backend = FakeCompletionBackend("live answer")
    gateway = live_gateway(backend, demo_mode=True)

    result = await gateway.complete(ACTION_TEMPLATES[ActionKind.FIX_GRAMMAR], "txt")

    assert result.value == DEMO_REPLIES[DemoReply.GRAMMAR]
    assert backend.prompts == []


@pytest.mark.asyncio
async def test_search_stays_demo_without_search_endpoint() -> None:
    search = FakeSearchBackend()
    gateway = live_gateway(search=search, search_api_url="")

    result = await gateway.search("anything")

    assert result.value[0].title == "Search results for: anything"
    assert search.queries == []


# ----------------------------------------------------------------------
# Live mode through injected backends
# ----------------------------------------------------------------------
@pytest.mark.asyncio
async def test_live_completion_builds_grounded_prompt() -> None:
    backend = FakeCompletionBackend("short")
    gateway = live_gateway(backend)

    result = await gateway.complete("Shorten:", "the text")

    assert result.unwrap() == "short"
    assert backend.prompts == ['Shorten:\n\nText to work with: "the text"']
    assert backend.api_keys == ["test-key"]


@pytest.mark.asyncio
async def test_live_completion_without_grounding_sends_instruction_only() -> None:
    backend = FakeCompletionBackend("hi")
    await live_gateway(backend).complete("just chat", "")
    assert backend.prompts == ["just chat"]


@pytest.mark.asyncio
async def test_credential_change_switches_mode_on_next_call() -> None:
    backend = FakeCompletionBackend("live")
    context = AIContext(Settings(demo_delay_seconds=0.0))
    gateway = AIGateway(context, completion_backend=backend)

    first = await gateway.complete("hello")
    context.set_credential("  fresh-key  ")
    second = await gateway.complete("hello")

    assert first.value == DEMO_REPLIES[DemoReply.FALLBACK]
    assert second.value == "live"
    assert backend.api_keys == ["fresh-key"]


def test_set_credential_persists_through_store(tmp_path) -> None:
    store = SettingsStore(tmp_path / "settings.json", vault=SecretVault(key_path=tmp_path / "k.key"))
    context = AIContext.load(store)

    context.set_credential("persisted")

    assert store.load().api_key == "persisted"


@pytest.mark.asyncio
async def test_backend_failure_is_returned_not_raised() -> None:
    gateway = live_gateway(FakeCompletionBackend(GatewayError.rate_limited()))

    result = await gateway.complete("x", "y")

    assert not result.success
    assert result.error.kind is ErrorKind.RATE_LIMITED
    with pytest.raises(RuntimeError):
        result.unwrap()


@pytest.mark.asyncio
async def test_unexpected_backend_exception_becomes_transport_error() -> None:
    class Exploding(FakeCompletionBackend):
        async def generate(self, prompt: str, *, api_key: str) -> GatewayResult[str]:
            raise RuntimeError("kaboom")

    gateway = live_gateway(Exploding())

    result = await gateway.complete("x")

    assert result.error == GatewayError.transport("kaboom")
    assert not gateway.is_loading


@pytest.mark.asyncio
async def test_aclose_closes_injected_backends() -> None:
    completion = FakeCompletionBackend()
    search = FakeSearchBackend()
    gateway = live_gateway(completion, search)

    await gateway.aclose()

    assert completion.closed and search.closed


# ----------------------------------------------------------------------
# Busy tracking
# ----------------------------------------------------------------------
def test_busy_tracker_publishes_only_edges() -> None:
    bus = EventBus()
    events: list[LoadingChanged] = []
    bus.subscribe(LoadingChanged, events.append)
    tracker = BusyTracker(bus)

    first = tracker.begin("complete")
    second = tracker.begin("search")
    tracker.end(first)
    assert tracker.is_loading
    tracker.end(second)
    tracker.end(second)

    assert [(e.is_loading, e.in_flight) for e in events] == [(True, 1), (False, 0)]
    assert events[0].labels == ("complete",)
    assert events[1].labels == ()


@pytest.mark.asyncio
async def test_loading_stays_true_until_all_overlapping_calls_finish() -> None:
    gates = [asyncio.Event(), asyncio.Event()]
    gateway = live_gateway(FakeCompletionBackend("a", "b", gates=gates))

    first = asyncio.create_task(gateway.complete("one"))
    second = asyncio.create_task(gateway.complete("two"))
    await asyncio.sleep(0)
    assert gateway.context.busy.in_flight == 2

    gates[0].set()
    await first
    assert gateway.is_loading

    gates[1].set()
    await second
    assert not gateway.is_loading


@pytest.mark.asyncio
async def test_loading_released_after_failure() -> None:
    gateway = live_gateway(FakeCompletionBackend(GatewayError.transport("down")))
    await gateway.complete("x")
    assert not gateway.is_loading


# ----------------------------------------------------------------------
# Error taxonomy
# ----------------------------------------------------------------------
def test_user_messages() -> None:
    assert GatewayError.rate_limited().user_message() == RATE_LIMIT_MESSAGE
    assert GatewayError.invalid_credential(401).user_message() == INVALID_CREDENTIAL_MESSAGE
    assert GatewayError.invalid_credential(403).user_message() == ACCESS_DENIED_MESSAGE
    assert GatewayError.backend(500, "Internal").user_message() == "API error: 500 - Internal"
    assert GatewayError.transport("Connection reset").user_message() == "Connection reset"


# ----------------------------------------------------------------------
# Gemini over HTTP
# ----------------------------------------------------------------------
@pytest.mark.asyncio
async def test_gemini_request_shape_and_parse() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = request.url
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "done"}]}}]})

    backend = GeminiBackend(live_settings(model="gemini-1.5-flash"), client=_mock_client(handler))

    result = await backend.generate("prompt text", api_key="k123")

    assert result.unwrap() == "done"
    assert captured["url"].path.endswith("/models/gemini-1.5-flash:generateContent")
    assert captured["url"].params["key"] == "k123"
    body = captured["body"]
    assert body["contents"][0]["parts"][0]["text"] == "prompt text"
    assert body["generationConfig"] == {"temperature": 0.7, "topK": 1, "topP": 1, "maxOutputTokens": 500}
    assert len(body["safetySettings"]) == 4
    assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "kind", "message"),
    [
        (429, ErrorKind.RATE_LIMITED, RATE_LIMIT_MESSAGE),
        (401, ErrorKind.INVALID_CREDENTIAL, INVALID_CREDENTIAL_MESSAGE),
        (403, ErrorKind.INVALID_CREDENTIAL, ACCESS_DENIED_MESSAGE),
        (500, ErrorKind.BACKEND_ERROR, "API error: 500 - Internal"),
    ],
)
async def test_gemini_status_classification(status: int, kind: ErrorKind, message: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"message": "Internal"}})

    backend = GeminiBackend(live_settings(), client=_mock_client(handler))

    result = await backend.generate("p", api_key="k")

    assert result.error.kind is kind
    assert result.error.user_message() == message


@pytest.mark.asyncio
async def test_gemini_network_error_is_transport() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    backend = GeminiBackend(live_settings(), client=_mock_client(handler))

    result = await backend.generate("p", api_key="k")

    assert result.error.kind is ErrorKind.TRANSPORT_ERROR
    assert "Connection refused" in result.error.user_message()


@pytest.mark.asyncio
async def test_gemini_malformed_body_is_transport() -> None:
    backend = GeminiBackend(
        live_settings(), client=_mock_client(lambda request: httpx.Response(200, json={"candidates": []}))
    )

    result = await backend.generate("p", api_key="k")

    assert result.error.kind is ErrorKind.TRANSPORT_ERROR
    assert result.error.message.startswith("Malformed response")


@pytest.mark.asyncio
async def test_gemini_reads_settings_on_each_call() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

    context = AIContext(live_settings(model="first"))
    backend = GeminiBackend(lambda: context.settings, client=_mock_client(handler))

    await backend.generate("p", api_key="k")
    context.update_settings(model="second")
    await backend.generate("p", api_key="k")

    assert paths[0].endswith("/models/first:generateContent")
    assert paths[1].endswith("/models/second:generateContent")


# ----------------------------------------------------------------------
# Web search over HTTP
# ----------------------------------------------------------------------
@pytest.mark.asyncio
async def test_web_search_request_and_parse() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"title": "A", "content": "from content", "url": "https://a"},
                    {"title": "B", "snippet": "from snippet", "url": "https://b"},
                ]
            },
        )

    backend = WebSearchBackend(live_settings(), client=_mock_client(handler))

    result = await backend.search("cats", api_key="s-key", max_results=5)

    assert captured["auth"] == "Bearer s-key"
    assert captured["body"] == {"query": "cats", "max_results": 5, "search_depth": "basic"}
    assert [r.snippet for r in result.unwrap()] == ["from content", "from snippet"]


@pytest.mark.asyncio
async def test_web_search_error_status() -> None:
    backend = WebSearchBackend(
        live_settings(), client=_mock_client(lambda request: httpx.Response(502, text="Bad gateway"))
    )

    result = await backend.search("cats", api_key="s", max_results=5)

    assert result.error == GatewayError.backend(502, "Bad gateway")


def test_search_result_from_payload_defaults() -> None:
    result = SearchResult.from_payload({"title": "T"})
    assert (result.title, result.snippet, result.url, result.ai_summary) == ("T", "", "", None)


# ----------------------------------------------------------------------
# OpenAI SDK
# ----------------------------------------------------------------------
class _FakeCompletions:
    def __init__(self, outcome: Any) -> None:
        self._outcome = outcome
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


def _fake_openai(outcome: Any) -> tuple[AsyncOpenAI, _FakeCompletions]:
    completions = _FakeCompletions(outcome)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return cast(AsyncOpenAI, client), completions


def _status_error(cls: type[openai.APIStatusError], status: int, message: str) -> openai.APIStatusError:
    response = httpx.Response(status, request=httpx.Request("POST", "https://api.test/v1/chat/completions"))
    return cls(message, response=response, body=None)


@pytest.mark.asyncio
async def test_openai_backend_sends_system_prompt() -> None:
    reply = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="better"))])
    client, completions = _fake_openai(reply)
    backend = OpenAIBackend(live_settings(provider="openai", model="gpt-4o-mini"), client=client)

    result = await backend.generate("improve me", api_key="k")

    assert result.unwrap() == "better"
    call = completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["max_tokens"] == 500
    assert call["messages"][0] == {
        "role": "system",
        "content": "You are a helpful writing assistant. Help users edit and improve their text.",
    }
    assert call["messages"][1] == {"role": "user", "content": "improve me"}


@pytest.mark.asyncio
async def test_openai_rate_limit_maps_to_taxonomy() -> None:
    client, _ = _fake_openai(_status_error(openai.RateLimitError, 429, "slow down"))
    backend = OpenAIBackend(live_settings(), client=client)

    result = await backend.generate("x", api_key="k")

    assert result.error.kind is ErrorKind.RATE_LIMITED


@pytest.mark.asyncio
async def test_openai_auth_error_maps_to_invalid_credential() -> None:
    client, _ = _fake_openai(_status_error(openai.AuthenticationError, 401, "bad key"))
    backend = OpenAIBackend(live_settings(), client=client)

    result = await backend.generate("x", api_key="k")

    assert result.error.user_message() == INVALID_CREDENTIAL_MESSAGE


@pytest.mark.asyncio
async def test_openai_connection_error_is_transport() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.test"))
    client, _ = _fake_openai(error)
    backend = OpenAIBackend(live_settings(), client=client)

    result = await backend.generate("x", api_key="k")

    assert result.error.kind is ErrorKind.TRANSPORT_ERROR
