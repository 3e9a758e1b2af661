import re

import httpx
import pytest

from fin_assistant.providers.base import ProviderError
from fin_assistant.providers.openai_compat import OpenAICompatibleProvider
from fin_assistant.services.context import DEFAULT_SYSTEM_PROMPT, FinancialContext
from fin_assistant.services.errors import ErrorKind, ErrorRule
from fin_assistant.services import gateway as gateway_module
from fin_assistant.services.gateway import CompletionGateway, build_gateway
from fin_assistant.settings import Settings
from tests.fakes import StaticConfig, StubProvider


def _gateway(provider: StubProvider, configured: bool = True) -> CompletionGateway:
    return CompletionGateway(config=StaticConfig(configured), provider_factory=lambda: provider)


def test_not_configured_never_calls_provider() -> None:
    provider = StubProvider()
    built = []

    def factory() -> StubProvider:
        built.append(1)
        return provider

    gw = CompletionGateway(config=StaticConfig(False), provider_factory=factory)
    result = gw.complete("How much did I spend?")

    assert result.error == "Provider not configured"
    assert result.kind is ErrorKind.NOT_CONFIGURED
    assert result.tokens_used == 0
    assert result.content
    assert provider.calls == []
    assert built == []


def test_success_returns_text_and_tokens() -> None:
    result = _gateway(StubProvider(text="Hello", total_tokens=42)).complete("hi")
    assert result.content == "Hello"
    assert result.error is None
    assert result.tokens_used == 42
    assert result.ok


def test_success_without_usage_counts_zero_tokens() -> None:
    result = _gateway(StubProvider(text="Hello", total_tokens=None)).complete("hi")
    assert result.error is None
    assert result.tokens_used == 0


def test_rate_limit_is_classified() -> None:
    provider = StubProvider(exc=RuntimeError("Request failed due to rate limit"))
    result = _gateway(provider).complete("Test prompt")

    assert result.error == "Rate limit exceeded"
    assert re.search(r"temporarily unavailable due to rate limits", result.content, re.I)
    assert result.tokens_used == 0
    assert len(provider.calls) == 1


def test_unknown_failure_falls_back() -> None:
    result = _gateway(StubProvider(exc=ConnectionError("socket hang up"))).complete("hi")
    assert result.kind is ErrorKind.UNKNOWN
    assert result.error == "Unknown error"
    assert result.tokens_used == 0
    assert result.content


@pytest.mark.parametrize(
    "message",
    [
        "Invalid API key provided",
        "401 Unauthorized",
        "401 Unauthorized: Incorrect API key provided: sk-abc***xyz (invalid_api_key)",
    ],
)
def test_auth_failures(message: str) -> None:
    result = _gateway(StubProvider(exc=ProviderError(message))).complete("hi")
    assert result.error == "Authentication failed"
    assert result.kind is ErrorKind.AUTH_FAILED
    assert result.tokens_used == 0


def test_quota_exhausted() -> None:
    exc = ProviderError(
        "429 Too Many Requests: You exceeded your current quota (insufficient_quota)",
        status_code=429,
        code="insufficient_quota",
    )
    result = _gateway(StubProvider(exc=exc)).complete("hi")
    assert result.error == "Insufficient quota"
    assert result.kind is ErrorKind.QUOTA_EXCEEDED


def test_transport_error_is_unknown() -> None:
    exc = httpx.ConnectError("connection refused")
    result = _gateway(StubProvider(exc=exc)).complete("hi")
    assert result.kind is ErrorKind.UNKNOWN


def test_exception_without_message() -> None:
    result = _gateway(StubProvider(exc=TimeoutError())).complete("hi")
    assert result.kind is ErrorKind.UNKNOWN
    assert result.content


@pytest.mark.parametrize("text", [None, "", "   \n"])
def test_empty_completion_is_an_error(text: str | None) -> None:
    result = _gateway(StubProvider(text=text, total_tokens=17)).complete("hi")
    assert result.kind is ErrorKind.EMPTY_RESPONSE
    assert result.error == "Empty response"
    assert result.tokens_used == 0
    assert result.content


def test_provider_construction_failure_is_recovered() -> None:
    def factory() -> StubProvider:
        raise RuntimeError("OPENAI_API_KEY is not configured")

    gw = CompletionGateway(config=StaticConfig(True), provider_factory=factory)
    result = gw.complete("hi")
    assert result.kind is ErrorKind.NOT_CONFIGURED
    assert result.tokens_used == 0


def test_custom_rules_are_used_in_order() -> None:
    rules = [
        ErrorRule(
            kind=ErrorKind.RATE_LIMITED,
            label="Slow down",
            content="Please wait a bit.",
            needles=("overloaded",),
        )
    ]
    provider = StubProvider(exc=RuntimeError("Server OVERLOADED"))
    gw = CompletionGateway(config=StaticConfig(True), provider_factory=lambda: provider, rules=rules)
    result = gw.complete("hi")
    assert result.error == "Slow down"
    assert result.content == "Please wait a bit."

    # Правила по умолчанию тут не действуют.
    provider.exc = RuntimeError("rate limit")
    assert gw.complete("hi").error == "Unknown error"


def test_messages_include_system_prompt_and_context() -> None:
    provider = StubProvider()
    ctx = FinancialContext.model_validate(
        {"account_balances": [{"account_name": "Main", "balance": 10, "account_type": "checking"}]}
    )
    _gateway(provider).complete("Where is my money?", context=ctx)

    system, user = provider.calls[0]
    assert system == {"role": "system", "content": DEFAULT_SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert user["content"].startswith("Where is my money?\n\nUser's Financial Context:")
    assert "- Main (checking): $10.00" in user["content"]


def test_custom_system_prompt() -> None:
    provider = StubProvider()
    _gateway(provider).complete("hi", system_prompt="Answer in JSON.")
    assert provider.calls[0][0]["content"] == "Answer in JSON."


def test_same_behavior_gives_same_result() -> None:
    provider = StubProvider(exc=RuntimeError("rate limit hit"))
    gw = _gateway(provider)
    first, second = gw.complete("hi"), gw.complete("hi")
    assert (first.error, first.tokens_used) == (second.error, second.tokens_used)

    provider.exc = None
    first, second = gw.complete("hi"), gw.complete("hi")
    assert first == second


@pytest.mark.parametrize(
    "exc",
    [
        RuntimeError("rate limit"),
        ValueError("bad json"),
        KeyError("choices"),
        ProviderError("500 Internal Server Error"),
        httpx.ReadTimeout("read timed out"),
    ],
)
def test_error_implies_zero_tokens(exc: Exception) -> None:
    result = _gateway(StubProvider(exc=exc, total_tokens=99)).complete("hi")
    assert result.error is not None
    assert result.tokens_used == 0
    assert result.content.strip()


def test_build_gateway_with_mock_provider() -> None:
    gw = build_gateway(Settings(DEFAULT_PROVIDER="mock"))
    result = gw.complete("What is my balance?")
    assert result.ok
    assert result.content == "[mock] ok: What is my balance?"
    assert result.tokens_used > 0


def test_build_gateway_openai_without_key() -> None:
    gw = build_gateway(Settings(_env_file=None, DEFAULT_PROVIDER="openai"))
    result = gw.complete("hi")
    assert result.kind is ErrorKind.NOT_CONFIGURED


def test_as_dict() -> None:
    result = _gateway(StubProvider(exc=RuntimeError("rate limit"))).complete("hi")
    assert result.as_dict() == {
        "content": result.content,
        "error": "Rate limit exceeded",
        "tokens_used": 0,
        "kind": "rate_limited",
    }


@pytest.mark.parametrize(
    "content",
    [
        [{"type": "text", "text": "Hello"}],
        123,
        {"text": "Hello"},
    ],
)
def test_non_string_content_from_upstream_is_recovered(content: object) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": content}}], "usage": {"total_tokens": 9}},
        )

    settings = Settings(_env_file=None, OPENAI_API_KEY="sk-test")
    provider = OpenAICompatibleProvider(settings, transport=httpx.MockTransport(handler))
    gw = CompletionGateway(config=StaticConfig(True), provider_factory=lambda: provider)

    result = gw.complete("hi")

    assert result.kind is ErrorKind.UNKNOWN
    assert result.error == "Unknown error"
    assert result.tokens_used == 0
    assert result.content


@pytest.mark.parametrize("text", [["Hello"], 42, {"text": "Hello"}])
def test_non_string_text_from_provider_is_recovered(text: object) -> None:
    result = _gateway(StubProvider(text=text)).complete("hi")
    assert result.kind is ErrorKind.UNKNOWN
    assert result.tokens_used == 0
    assert result.content


def test_malformed_usage_is_recovered() -> None:
    provider = StubProvider(text="Hello")
    provider.total_tokens = "lots"  # type: ignore[assignment]
    result = _gateway(provider).complete("hi")
    assert result.kind is ErrorKind.UNKNOWN
    assert result.tokens_used == 0


class RecordingLog:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def __getattr__(self, level: str):
        def _log(event: str, **kw: object) -> None:
            self.events.append((level, event, kw))

        return _log


def test_empty_completion_logged_as_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    rec = RecordingLog()
    monkeypatch.setattr(gateway_module, "log", rec)

    _gateway(StubProvider(text="")).complete("secret question")

    [(level, event, kw)] = rec.events
    assert (level, event) == ("error", "completion_failed")
    assert kw["kind"] == "empty_response"
    assert "secret question" not in repr(kw)
