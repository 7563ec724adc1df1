"""Tests for the Orchestrator run flow, its events and the event channel."""

import asyncio
from types import SimpleNamespace

import pytest

from agentloop.agent import SubAgent, SubAgentStatus, Thought, ThoughtKind, ThoughtStatus
from agentloop.decision import DecisionEngine, classify_by_rules
from agentloop.errors import ChannelClosedError
from agentloop.llm import ChatProvider, TokenBudget
from agentloop.memory import MemoryKind, MemoryQuery
from agentloop.orchestration import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    EventChannel,
    Orchestrator,
    SubAgentEvent,
    SubAgentUpdateEvent,
    ThoughtEvent,
)

from conftest import collect

ANALYSIS_MESSAGE = "请分析一下这个问题的原因和影响"


class SlowCompletions:
    """A chat endpoint that never answers in time."""

    async def create(self, **kwargs):
        await asyncio.sleep(10)


# =============================================================================
# Single-agent runs
# =============================================================================


class TestSingleAgentRun:
    """Tests for classified runs that use one agent."""

    @pytest.mark.asyncio
    async def test_arithmetic_runs_code(self, make_orchestrator):
        """Test that "3+4*2" is computed by the code tool and grounds the answer."""
        orchestrator, client = make_orchestrator({"judge": "是"})

        events, transcript = await collect(orchestrator, "3+4*2")

        actions = transcript.thoughts_of(ThoughtKind.ACTION)
        assert len(actions) == 1
        assert actions[0].status == ThoughtStatus.COMPLETED
        assert actions[0].tool_output["result"] == "14"

        assert client.stages() == ["judge", "observe", "think", "reflect", "improve", "answer"]
        answer_prompt = client.calls[-1]["messages"][-1]["content"]
        assert "=== Tool Results ===" in answer_prompt
        assert '"result": "14"' in answer_prompt
        assert "do not recompute them" in answer_prompt

        assert isinstance(events[-1], DoneEvent)
        assert transcript.answer == "Final answer."

    @pytest.mark.asyncio
    async def test_stage_order(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "yes"})

        _, transcript = await collect(orchestrator, "3+4*2")

        kinds = [t.kind for t in transcript.thoughts.values()]
        assert kinds == [
            ThoughtKind.DECISION,
            ThoughtKind.OBSERVATION,
            ThoughtKind.THOUGHT,
            ThoughtKind.ACTION,
            ThoughtKind.REFLECTION,
        ]

    @pytest.mark.asyncio
    async def test_status_history_moves_forward(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "yes"})

        _, transcript = await collect(orchestrator, "3+4*2")

        assert len(transcript.status_history) == 5
        for history in transcript.status_history.values():
            assert history[0] == ThoughtStatus.RUNNING
            assert history[-1] == ThoughtStatus.COMPLETED
            assert history.count(ThoughtStatus.COMPLETED) == 1

    @pytest.mark.asyncio
    async def test_decision_thought_carries_classification(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "yes"})

        events, _ = await collect(orchestrator, "3+4*2")

        assert events[0].agent_thought.status == ThoughtStatus.RUNNING
        decision = events[1].agent_thought
        assert decision.id == events[0].agent_thought.id
        assert decision.kind == ThoughtKind.DECISION
        assert decision.status == ThoughtStatus.COMPLETED
        assert decision.shared_context["toolsRequired"] == ["code_execution"]

    @pytest.mark.asyncio
    async def test_remembers_exchange(self, make_orchestrator, memory):
        orchestrator, _ = make_orchestrator({"judge": "yes"})

        await collect(orchestrator, "3+4*2")

        episodes = memory.retrieve(MemoryQuery(kind=MemoryKind.EPISODIC))
        reflections = memory.retrieve(MemoryQuery(kind=MemoryKind.SEMANTIC))
        assert [m.content for m in episodes] == ["User: 3+4*2\nAssistant: Final answer."]
        assert len(reflections) == 1


# =============================================================================
# Direct answers
# =============================================================================


class TestDirectAnswer:
    """Tests for runs that skip the agent stages."""

    @pytest.mark.asyncio
    async def test_greeting(self, make_orchestrator):
        orchestrator, client = make_orchestrator()

        events, transcript = await collect(orchestrator, "你好")

        assert isinstance(events[0], ThoughtEvent)
        assert isinstance(events[1], ThoughtEvent)
        assert all(isinstance(e, ContentEvent) for e in events[2:-1])
        assert isinstance(events[-1], DoneEvent)
        assert client.stages() == ["judge", "answer"]
        assert list(transcript.thoughts.values())[0].kind == ThoughtKind.DECISION
        assert transcript.answer == "Final answer."

    @pytest.mark.asyncio
    async def test_history_precedes_request(self, make_orchestrator):
        orchestrator, client = make_orchestrator()
        history = [
            {"role": "user", "content": "My name is Ada."},
            {"role": "assistant", "content": "Nice to meet you, Ada."},
        ]

        await collect(orchestrator, "你好", history=history)

        messages = client.calls[-1]["messages"]
        assert messages[:2] == history
        assert messages[2]["content"].startswith("User request: 你好")

    @pytest.mark.asyncio
    async def test_non_streaming_single_content_event(self, make_orchestrator):
        orchestrator, client = make_orchestrator(streaming=False)

        events, _ = await collect(orchestrator, "你好")

        contents = [e for e in events if isinstance(e, ContentEvent)]
        assert contents == [ContentEvent("Final answer.")]
        assert client.calls[-1]["stream"] is False


# =============================================================================
# Multi-agent runs
# =============================================================================


class TestMultiAgentRun:
    """Tests for the analyst, technical expert and project manager roster."""

    @pytest.mark.asyncio
    async def test_three_sub_agents_finish_before_answer(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "It depends"})

        events, transcript = await collect(orchestrator, ANALYSIS_MESSAGE)

        first_content = next(i for i, e in enumerate(events) if isinstance(e, ContentEvent))
        created = [i for i, e in enumerate(events) if isinstance(e, SubAgentEvent)]
        assert len(created) == 3
        assert len(transcript.sub_agents) == 3
        for sub_agent in transcript.sub_agents.values():
            assert sub_agent.progress == 100
            assert sub_agent.status == SubAgentStatus.COMPLETED
            assert sub_agent.deliverable == "The process was sound."

        completions = [
            i for i, e in enumerate(events)
            if isinstance(e, SubAgentUpdateEvent) and e.status == SubAgentStatus.COMPLETED
        ]
        assert len(completions) == 3
        assert max(completions) < first_content
        assert isinstance(events[-1], DoneEvent)

    @pytest.mark.asyncio
    async def test_progress_milestones(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "It depends"})

        events, _ = await collect(orchestrator, ANALYSIS_MESSAGE)

        progress: dict[str, list[int]] = {}
        for event in events:
            if isinstance(event, SubAgentEvent):
                progress[event.sub_agent.id] = [event.sub_agent.progress]
            elif isinstance(event, SubAgentUpdateEvent):
                progress[event.sub_agent_id].append(event.progress)

        assert list(progress.values()) == [[20, 40, 70, 90, 100]] * 3

    @pytest.mark.asyncio
    async def test_roster_and_collaboration_thought(self, make_orchestrator):
        orchestrator, client = make_orchestrator({"judge": "It depends"})

        events, transcript = await collect(orchestrator, ANALYSIS_MESSAGE)

        names = [e.sub_agent.name for e in events if isinstance(e, SubAgentEvent)]
        assert names == ["Analyst", "Technical Expert", "Project Manager"]

        collaborations = transcript.thoughts_of(ThoughtKind.COLLABORATION)
        assert len(collaborations) == 1
        assert collaborations[0].status == ThoughtStatus.COMPLETED
        assert collaborations[0].content == "3 agents completed collaboration"

        answer_prompt = client.calls[-1]["messages"][-1]["content"]
        assert "=== Multi-Agent Collaboration Summary ===" in answer_prompt
        assert "Project Manager: The process was sound." in answer_prompt

    @pytest.mark.asyncio
    async def test_marker_verb_triggers_roster(self, make_orchestrator):
        """Test that an analysis verb alone is enough for a multi-agent run."""
        orchestrator, _ = make_orchestrator({"judge": "yes"})

        events, _ = await collect(orchestrator, "analyze 3+4*2")

        assert sum(isinstance(e, SubAgentEvent) for e in events) == 3

    @pytest.mark.asyncio
    async def test_only_first_agent_acts(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "yes"})

        _, transcript = await collect(orchestrator, "analyze 3+4*2")

        actions = transcript.thoughts_of(ThoughtKind.ACTION)
        assert len(actions) == 1
        assert actions[0].tool_output["result"] == "14"

    def test_is_complex(self, make_orchestrator):
        orchestrator, _ = make_orchestrator(multi_agent_min_length=20)
        plain = classify_by_rules("tell me a story", "en")

        assert orchestrator.is_complex("tell me a story", plain) is False
        assert orchestrator.is_complex("tell me a story about a dragon and a knight", plain) is True
        assert orchestrator.is_complex("Compare two stories", plain) is True


# =============================================================================
# Failures, timeouts and cancellation
# =============================================================================


class TestRunFailures:
    """Tests for terminal errors and abandoned runs."""

    @pytest.mark.asyncio
    async def test_answer_failure_is_terminal_error(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"answer": RuntimeError("model offline")})

        events, transcript = await collect(orchestrator, "你好")

        assert events[-1] == ErrorEvent("model offline")
        assert not transcript.done
        assert transcript.finished

    @pytest.mark.asyncio
    async def test_stage_failure_does_not_stop_run(self, make_orchestrator):
        orchestrator, _ = make_orchestrator({"judge": "yes", "think": RuntimeError("boom")})

        events, transcript = await collect(orchestrator, "3+4*2")

        thinking = transcript.thoughts_of(ThoughtKind.THOUGHT)[0]
        assert thinking.status == ThoughtStatus.ERROR
        assert isinstance(events[-1], DoneEvent)

    @pytest.mark.asyncio
    async def test_timeout(self, registry, memory, model_config):
        client = SimpleNamespace(chat=SimpleNamespace(completions=SlowCompletions()))
        provider = ChatProvider(client, "fake-model")
        engine = DecisionEngine(provider, registry, TokenBudget(model_config), language="en")
        orchestrator = Orchestrator(
            provider, engine, registry, memory, model_config, language="en", run_timeout=0.05
        )

        events, transcript = await collect(orchestrator, "你好")

        assert events == [ErrorEvent("Run timed out after 0.05 seconds")]
        assert not transcript.done

    @pytest.mark.asyncio
    async def test_consumer_abandon_cancels_producer(self, make_orchestrator, memory):
        """Test that closing the iterator early stops the run."""
        orchestrator, _ = make_orchestrator(channel_capacity=1)

        run = orchestrator.run("你好")
        first = await run.__anext__()
        await run.aclose()
        await asyncio.sleep(0)

        assert isinstance(first, ThoughtEvent)
        assert len(memory) == 0


# =============================================================================
# Events & channel
# =============================================================================


class TestEvents:
    """Tests for event wire forms."""

    def test_thought_event(self):
        thought = Thought.open(ThoughtKind.OBSERVATION, "Observation", "looking")

        data = ThoughtEvent(thought).to_dict()

        assert data["type"] == "agent_thought_update"
        assert data["agent_thought"]["id"] == thought.id

    def test_sub_agent_events(self):
        sub_agent = SubAgent(id="agent-1", name="Analyst", role="Analysis", expertise=["x"])

        assert SubAgentEvent(sub_agent).to_dict()["sub_agent"]["status"] == "thinking"
        assert SubAgentUpdateEvent("agent-1", 100, SubAgentStatus.COMPLETED, "report").to_dict() == {
            "type": "sub_agent_update",
            "sub_agent_id": "agent-1",
            "progress": 100,
            "status": "completed",
            "deliverable": "report",
        }

    def test_terminal_events(self):
        assert DoneEvent().to_dict() == {"type": "done"}
        assert ErrorEvent("boom").to_dict() == {"type": "error", "error": "boom"}
        assert ContentEvent("hi").to_dict() == {"type": "content", "content": "hi"}


class TestEventChannel:
    """Tests for EventChannel."""

    @pytest.mark.asyncio
    async def test_drains_then_stops(self):
        channel = EventChannel(maxsize=4)
        await channel.send("a")
        await channel.send("b")
        await channel.close()

        assert [item async for item in channel] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_send_after_close(self):
        channel = EventChannel()
        await channel.close()

        with pytest.raises(ChannelClosedError):
            await channel.send("late")

    @pytest.mark.asyncio
    async def test_close_on_full_channel(self):
        """Test that close never waits, even when the buffer is full."""
        channel = EventChannel(maxsize=1)
        await channel.send("only")
        await channel.close()

        assert channel.closed
        assert [item async for item in channel] == ["only"]

    @pytest.mark.asyncio
    async def test_backpressure(self):
        channel = EventChannel(maxsize=1)
        await channel.send("first")

        blocked = asyncio.create_task(channel.send("second"))
        await asyncio.sleep(0)
        assert not blocked.done()

        assert await channel.__anext__() == "first"
        await blocked
        assert await channel.__anext__() == "second"

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            EventChannel(maxsize=0)
