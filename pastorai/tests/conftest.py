import os

# Ensure config reads these during import in tests.
os.environ.setdefault("ENV", "test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-0000000000000000")
os.environ.setdefault("OPENAI_API_URL", "https://upstream.test/v1/chat/completions")
os.environ.setdefault("CORS_ALLOW_ORIGINS", "*")

import httpx
import pytest
import pytest_asyncio

from pastorai.app.main import app
from pastorai.client.orchestrator import ResponseOrchestrator
from pastorai.engine import completions
from pastorai.engine.completions import CompletionResult


def completion_ok(content: str = "Peace be with you.") -> CompletionResult:
    return CompletionResult(
        ok=True,
        model="gpt-4",
        content=content,
        usage={"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3},
        latency_ms=5,
        status_code=200,
        error_text=None,
    )


def completion_failed(error_text: str = "Completion API HTTP 503: unavailable") -> CompletionResult:
    return CompletionResult(
        ok=False,
        model="gpt-4",
        content=None,
        usage=None,
        latency_ms=5,
        status_code=503,
        error_text=error_text,
    )


class FakeUpstream:
    """Stands in for completions.request_completion and records each call."""

    def __init__(self, result: CompletionResult | None = None):
        self.result = result or completion_ok()
        self.calls: list[dict] = []

    def reply(self, content: str | None) -> None:
        self.result = completion_ok(content)  # type: ignore[arg-type]

    def fail(self, error_text: str = "Completion API HTTP 503: unavailable") -> None:
        self.result = completion_failed(error_text)

    async def __call__(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        return self.result


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(completions, "request_completion", fake)
    return fake


@pytest_asyncio.fixture
async def orchestrator(upstream):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://pastorai.test")
    try:
        yield ResponseOrchestrator("http://pastorai.test", client=client)
    finally:
        await client.aclose()
