"""Tests for Think-stage decoding and the Thought/SubAgent state rules."""

import json

import pytest

from agentloop.agent import (
    RawThinking,
    StructuredThinking,
    SubAgent,
    SubAgentStatus,
    Thought,
    ThoughtKind,
    ThoughtStatus,
    decode_thinking,
)
from agentloop.errors import InvalidTransitionError

from conftest import THINKING_JSON


def _payload(**overrides) -> str:
    payload = {
        "reasoning_steps": [{"step": 1, "description": "d", "conclusion": "c", "confidence": 0.7}],
        "alternatives": [
            {"option": "A", "pros": ["p"], "cons": [], "feasibility": 0.8},
            {"option": "B", "pros": [], "cons": ["c"], "feasibility": 0.4},
        ],
        "final_recommendation": "Go with A",
    }
    payload.update(overrides)
    return json.dumps(payload)


# =============================================================================
# decode_thinking
# =============================================================================


class TestDecodeThinking:
    """Tests for decode_thinking."""

    def test_fenced_structured_answer(self):
        result = decode_thinking(THINKING_JSON)

        assert isinstance(result, StructuredThinking)
        assert [step.step for step in result.reasoning_steps] == [1, 2]
        assert result.alternatives[1].option == "Mental arithmetic"
        assert result.final_recommendation == "Evaluate the expression with code"

    def test_plain_text_is_raw(self):
        result = decode_thinking("Let me think about this in prose instead.")

        assert result == RawThinking("Let me think about this in prose instead.")

    def test_single_alternative_is_raw(self):
        """Test that fewer than two alternatives fails validation."""
        text = _payload(alternatives=[{"option": "Only", "feasibility": 0.5}])

        assert isinstance(decode_thinking(text), RawThinking)

    def test_no_steps_is_raw(self):
        assert isinstance(decode_thinking(_payload(reasoning_steps=[])), RawThinking)

    @pytest.mark.parametrize("confidence", [-0.1, 1.5])
    def test_confidence_out_of_range_is_raw(self, confidence):
        text = _payload(reasoning_steps=[{"step": 1, "description": "d", "confidence": confidence}])

        assert isinstance(decode_thinking(text), RawThinking)

    def test_feasibility_out_of_range_is_raw(self):
        text = _payload(alternatives=[
            {"option": "A", "feasibility": 2},
            {"option": "B", "feasibility": 0.5},
        ])

        assert isinstance(decode_thinking(text), RawThinking)

    def test_truncated_json_is_raw(self):
        text = _payload()[:-20]

        result = decode_thinking(text)

        assert isinstance(result, RawThinking)
        assert result.text == text

    def test_missing_recommendation_defaults_empty(self):
        payload = json.loads(_payload())
        del payload["final_recommendation"]

        result = decode_thinking(json.dumps(payload))

        assert isinstance(result, StructuredThinking)
        assert result.final_recommendation == ""


# =============================================================================
# Thought transitions
# =============================================================================


class TestThoughtTransitions:
    """Tests for Thought status rules."""

    def test_open_is_running(self):
        thought = Thought.open(ThoughtKind.OBSERVATION, "Observation", "working...")

        assert thought.status == ThoughtStatus.RUNNING
        assert thought.id.startswith("obs-")

    def test_forward_edges(self):
        thought = Thought(kind=ThoughtKind.THOUGHT, title="Thinking")
        thought.mark(ThoughtStatus.RUNNING)
        thought.mark(ThoughtStatus.RUNNING)
        thought.complete("done")

        assert thought.status == ThoughtStatus.COMPLETED
        assert thought.is_final

    def test_error_edge(self):
        thought = Thought.open(ThoughtKind.ACTION, "Act")
        thought.fail("broken")

        assert thought.status == ThoughtStatus.ERROR
        assert thought.content == "broken"

    @pytest.mark.parametrize("start,target", [
        (ThoughtStatus.WAITING, ThoughtStatus.COMPLETED),
        (ThoughtStatus.WAITING, ThoughtStatus.ERROR),
        (ThoughtStatus.COMPLETED, ThoughtStatus.RUNNING),
        (ThoughtStatus.ERROR, ThoughtStatus.COMPLETED),
        (ThoughtStatus.RUNNING, ThoughtStatus.WAITING),
    ])
    def test_illegal_edges(self, start, target):
        thought = Thought(kind=ThoughtKind.REFLECTION, title="Reflect", status=start)

        with pytest.raises(InvalidTransitionError):
            thought.mark(target)

    def test_snapshot_is_independent(self):
        thought = Thought.open(ThoughtKind.ACTION, "Act", tool_input={"code": "1+1"})
        snapshot = thought.snapshot()

        thought.tool_input["code"] = "2+2"
        thought.complete("changed")

        assert snapshot.tool_input == {"code": "1+1"}
        assert snapshot.status == ThoughtStatus.RUNNING

    def test_to_dict_omits_unset_fields(self):
        thought = Thought.open(ThoughtKind.OBSERVATION, "Observation", "text")

        data = thought.to_dict()

        assert data["type"] == "observation"
        assert data["status"] == "running"
        assert "toolOutput" not in data
        assert "reasoningSteps" not in data


# =============================================================================
# SubAgent progress
# =============================================================================


class TestSubAgentProgress:

    def test_advance(self):
        sub_agent = SubAgent(id="agent-1", name="Analyst", role="Analysis")
        sub_agent.advance(20)
        sub_agent.advance(40, SubAgentStatus.WORKING)

        assert sub_agent.progress == 40
        assert sub_agent.status == SubAgentStatus.WORKING

    def test_progress_never_decreases(self):
        sub_agent = SubAgent(id="agent-1", name="Analyst", role="Analysis", progress=70)

        with pytest.raises(InvalidTransitionError):
            sub_agent.advance(40)

    def test_progress_capped_at_100(self):
        sub_agent = SubAgent(id="agent-1", name="Analyst", role="Analysis")

        with pytest.raises(InvalidTransitionError):
            sub_agent.advance(120)

    def test_completed_is_terminal(self):
        sub_agent = SubAgent(id="agent-1", name="Analyst", role="Analysis")
        sub_agent.advance(100, SubAgentStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            sub_agent.advance(100, SubAgentStatus.WORKING)
