"""Tests for the chat provider adapter and token budgets."""

from types import SimpleNamespace

import pytest

from agentloop.llm import ChatProvider, StageBudget, TokenBudget
from agentloop.utils.config import ModelConfig

from conftest import FakeChatClient, FakeStream, _chunk

BUDGET = StageBudget(max_tokens=100, temperature=0.3)


def _model(**overrides) -> ModelConfig:
    values = {"api_key": "k", "base_url": None, "model": "m"}
    values.update(overrides)
    return ModelConfig(**values)


# =============================================================================
# ChatProvider
# =============================================================================


class TestChatProvider:
    """Tests for ChatProvider against a fake client."""

    @pytest.mark.asyncio
    async def test_complete(self):
        client = FakeChatClient({"answer": "hello"})
        provider = ChatProvider(client, "fake-model")

        text = await provider.complete([{"role": "user", "content": "hi"}], BUDGET)

        assert text == "hello"
        assert client.calls[0]["model"] == "fake-model"
        assert client.calls[0]["max_tokens"] == 100
        assert client.calls[0]["stream"] is False

    @pytest.mark.asyncio
    async def test_stream_deltas(self):
        client = FakeChatClient({"answer": "abcdefghij"}, chunk_size=4)
        provider = ChatProvider(client, "fake-model")

        deltas = [d async for d in provider.stream([{"role": "user", "content": "hi"}], BUDGET)]

        assert deltas == ["abcd", "efgh", "ij"]

    @pytest.mark.asyncio
    async def test_stream_stops_at_finish_reason(self):
        """Test that chunks after the finishing one are ignored and the stream is closed."""
        stream = FakeStream([
            _chunk("one "),
            _chunk("two", "stop"),
            _chunk("ignored"),
        ])

        async def _create(**kwargs):
            return stream

        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_create)))

        deltas = [d async for d in ChatProvider(client, "m").stream([], BUDGET)]

        assert deltas == ["one ", "two"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_stream_closed_when_consumer_stops(self):
        stream = FakeStream([_chunk("a"), _chunk("b"), _chunk("c", "stop")])

        async def _create(**kwargs):
            return stream

        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_create)))
        deltas = ChatProvider(client, "m").stream([], BUDGET)

        assert await deltas.__anext__() == "a"
        await deltas.aclose()

        assert stream.closed

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        async def _create(**kwargs):
            return SimpleNamespace(choices=[])

        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_create)))

        assert await ChatProvider(client, "m").complete([], BUDGET) == ""

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        provider = ChatProvider(FakeChatClient({"answer": ConnectionError("reset")}), "m")

        with pytest.raises(ConnectionError):
            await provider.complete([{"role": "user", "content": "hi"}], BUDGET)


# =============================================================================
# TokenBudget
# =============================================================================


class TestTokenBudget:
    """Tests for per-stage and final-answer budgets."""

    def test_stage_defaults(self):
        budget = TokenBudget(_model())

        assert budget.for_stage("think") == StageBudget(1500, 0.4)
        assert budget.for_stage("judge") == StageBudget(10, 0.1)

    def test_clamped_to_max_tokens(self):
        budget = TokenBudget(_model(max_tokens=500))

        assert budget.for_stage("think").max_tokens == 500
        assert budget.for_stage("act").max_tokens == 300

    def test_clamped_to_context_window(self):
        budget = TokenBudget(_model(context_window=1000))

        # floor(0.8 * 1000)
        assert budget.for_stage("think").max_tokens == 800

    def test_never_below_one(self):
        assert TokenBudget(_model(max_tokens=0)).for_stage("observe").max_tokens == 1

    def test_unknown_stage(self):
        with pytest.raises(KeyError):
            TokenBudget(_model()).for_stage("dream")

    def test_answer_budget(self):
        budget = TokenBudget(_model(context_window=4096, max_tokens=2000, temperature=0.7))

        result = budget.answer_budget("x" * 400)

        assert result.max_tokens == 2000
        assert result.temperature == 0.3

    def test_answer_budget_long_prompt(self):
        budget = TokenBudget(_model(context_window=4096, max_tokens=2000))

        # 4096 - 3000 - 300 = 796
        assert budget.answer_budget("x" * 12000).max_tokens == 796
        assert budget.answer_budget("x" * 40000).max_tokens == 200
