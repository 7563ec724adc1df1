"""Shared fixtures: a fake OpenAI client and pre-wired components."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from agentloop.decision import DecisionEngine
from agentloop.llm import ChatProvider, TokenBudget
from agentloop.memory import MemoryStore
from agentloop.orchestration import Orchestrator, RunTranscript
from agentloop.tools import build_default_registry
from agentloop.utils.config import FileConfig, ModelConfig, SearchConfig


THINKING_JSON = """```json
{
  "reasoning_steps": [
    {"step": 1, "description": "Parse the request", "conclusion": "It is arithmetic", "confidence": 0.9},
    {"step": 2, "description": "Apply precedence", "conclusion": "Multiply first", "confidence": 0.8}
  ],
  "alternatives": [
    {"option": "Evaluate with code", "pros": ["exact"], "cons": ["slower"], "feasibility": 0.9},
    {"option": "Mental arithmetic", "pros": ["fast"], "cons": ["error-prone"], "feasibility": 0.6}
  ],
  "final_recommendation": "Evaluate the expression with code"
}
```"""

DEFAULT_RESPONSES = {
    "judge": "否",
    "observe": "The user wants a clear result.",
    "think": THINKING_JSON,
    "decide": "I would just respond.",
    "reflect": "The process was sound.",
    "improve": "Cache repeated lookups.",
    "answer": "Final answer.",
}


# =============================================================================
# Fake OpenAI client
# =============================================================================

def detect_stage(messages: list[dict], max_tokens: int) -> str:
    """Which pipeline call a request belongs to, judged from its prompt."""
    last = str(messages[-1]["content"])

    if max_tokens == 10:
        return "judge"
    if "改进建议" in last or "improvement suggestions" in last:
        return "improve"
    if "reasoning_steps" in last:
        return "think"
    if "use_tool" in last and "clarify" in last:
        return "decide"
    if "请反思" in last or "reflect on the following" in last:
        return "reflect"
    if "观察和分析" in last or "observe and analyze" in last:
        return "observe"
    return "answer"


def _chunk(content, finish_reason=None):
    return SimpleNamespace(choices=[SimpleNamespace(
        delta=SimpleNamespace(content=content),
        finish_reason=finish_reason
    )])


class FakeStream:
    """Mimics ``openai.AsyncStream``: async iterable and async context manager."""

    def __init__(self, chunks):
        self._chunks = iter(chunks)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._chunks)
        except StopIteration:
            raise StopAsyncIteration

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


def _stream_text(text: str, chunk_size: int) -> FakeStream:
    chunks = [_chunk(text[start:start + chunk_size]) for start in range(0, len(text), chunk_size)]
    return FakeStream(chunks + [_chunk(None, "stop")])


class FakeCompletions:
    def __init__(self, responses: dict, chunk_size: int):
        self.responses = responses
        self.chunk_size = chunk_size
        self.calls: list[dict] = []

    async def create(self, *, model, messages, max_tokens, temperature, stream=False):
        stage = detect_stage(messages, max_tokens)
        self.calls.append({
            "stage": stage,
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": stream,
        })

        response = self.responses.get(stage, "")
        if callable(response):
            response = response(messages)
        if isinstance(response, BaseException):
            raise response

        if stream:
            return _stream_text(response, self.chunk_size)
        return SimpleNamespace(choices=[SimpleNamespace(
            message=SimpleNamespace(content=response),
            finish_reason="stop"
        )])


class FakeChatClient:
    """
    Stands in for ``openai.AsyncOpenAI``.

    Responses are looked up by stage (see ``detect_stage``). A value may be
    a string, an exception to raise, or a callable taking the messages.
    """

    def __init__(self, responses: dict | None = None, chunk_size: int = 8):
        merged = dict(DEFAULT_RESPONSES)
        merged.update(responses or {})
        self.chat = SimpleNamespace(completions=FakeCompletions(merged, chunk_size))

    @property
    def calls(self) -> list[dict]:
        return self.chat.completions.calls

    def stages(self) -> list[str]:
        return [call["stage"] for call in self.calls]


class FakeClock:
    """Settable clock for the memory store."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def model_config() -> ModelConfig:
    return ModelConfig(api_key="test-key", base_url=None, model="fake-model")


@pytest.fixture
def budget(model_config) -> TokenBudget:
    return TokenBudget(model_config)


@pytest.fixture
def fake_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def provider(fake_client) -> ChatProvider:
    return ChatProvider(fake_client, "fake-model")


@pytest.fixture
def registry(tmp_path):
    return build_default_registry(
        search_config=SearchConfig(),
        file_config=FileConfig(allowed_roots=(tmp_path,))
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory(clock) -> MemoryStore:
    return MemoryStore(max_capacity=100, clock=clock)


@pytest.fixture
def engine(provider, registry, budget) -> DecisionEngine:
    return DecisionEngine(provider, registry, budget, language="en")


@pytest.fixture
def make_orchestrator(registry, memory, model_config):
    """Build an orchestrator around a fake client with custom responses."""
    def _make(responses: dict | None = None, language: str = "en", **kwargs):
        client = FakeChatClient(responses)
        provider = ChatProvider(client, "fake-model")
        budget = TokenBudget(model_config)
        engine = DecisionEngine(provider, registry, budget, language=language)
        orchestrator = Orchestrator(
            provider,
            engine,
            registry,
            memory,
            model_config,
            language=language,
            **kwargs
        )
        return orchestrator, client
    return _make


async def collect(orchestrator: Orchestrator, message: str, **kwargs):
    """Run to completion; returns (events, transcript)."""
    events = []
    transcript = RunTranscript()
    async for event in orchestrator.run(message, **kwargs):
        events.append(event)
        transcript.apply(event)
    return events, transcript
