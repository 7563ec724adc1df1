"""Tests for DecisionEngine: LLM judgment, rule fallback and next-action decisions."""

import pytest

from agentloop.decision import (
    Complexity,
    DecisionAction,
    DecisionContext,
    DecisionEngine,
    ThinkingStrategy,
    extract_json_object,
    parse_judgment,
)
from agentloop.llm import ChatProvider
from agentloop.tools import Tool, ToolRegistry, ToolResult

from conftest import FakeChatClient


def _engine(registry, budget, responses=None, language="en"):
    client = FakeChatClient(responses)
    return DecisionEngine(ChatProvider(client, "fake-model"), registry, budget, language), client


# =============================================================================
# Judgment parsing
# =============================================================================


class TestParseJudgment:

    @pytest.mark.parametrize("answer,expected", [
        ("是", True),
        ("是的", True),
        ("需要", True),
        ("Yes.", True),
        ("**YES**", True),
        ("否", False),
        ("不是", False),
        ("不需要", False),
        ("no", False),
        ("nothing to add", None),
        ("maybe", None),
        ("", None),
    ])
    def test_parse(self, answer, expected):
        assert parse_judgment(answer) is expected


class TestExtractJsonObject:

    def test_fenced(self):
        assert extract_json_object('```json\n{"action": "respond"}\n```') == {"action": "respond"}

    def test_wrapped_in_prose(self):
        assert extract_json_object('Sure! {"a": 1} Hope that helps.') == {"a": 1}

    def test_not_an_object(self):
        assert extract_json_object("[1, 2]") == {}
        assert extract_json_object("no json here") == {}


# =============================================================================
# analyze
# =============================================================================


class TestAnalyze:
    """Tests for DecisionEngine.analyze."""

    @pytest.mark.asyncio
    async def test_yes_means_code_execution(self, registry, budget):
        engine, client = _engine(registry, budget, {"judge": "是"})

        result = await engine.analyze("统计这段文字有多少个字符")

        assert result.tools_required == ("code_execution",)
        assert result.thinking_strategy == ThinkingStrategy.STEP_BY_STEP
        assert result.confidence == 0.9
        assert result.estimated_complexity == Complexity.MEDIUM
        assert client.calls[0]["max_tokens"] == 10
        assert client.calls[0]["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_no_with_nothing_left_is_direct(self, registry, budget):
        """Test that 'no' drops code_execution and answers directly."""
        engine, _ = _engine(registry, budget, {"judge": "否"})

        result = await engine.analyze("3+4*2")

        assert result.is_direct_answer
        assert result.confidence == 0.85

    @pytest.mark.asyncio
    async def test_no_keeps_other_tools(self, registry, budget):
        """Test that 'no' keeps rule-selected tools other than code_execution."""
        engine, _ = _engine(registry, budget, {"judge": "no"})

        result = await engine.analyze("今天北京天气怎么样")

        assert result.tools_required == ("web_search",)
        assert result.thinking_strategy == ThinkingStrategy.QUICK

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back_to_rules(self, registry, budget):
        engine, _ = _engine(registry, budget, {"judge": RuntimeError("provider down")})

        result = await engine.analyze("3+4*2")

        assert result.tools_required == ("code_execution",)
        assert result.confidence == 0.8

    @pytest.mark.asyncio
    async def test_ambiguous_answer_falls_back_to_rules(self, registry, budget):
        engine, _ = _engine(registry, budget, {"judge": "It depends on the input"})

        result = await engine.analyze("你好")

        assert result.is_direct_answer
        assert result.confidence == 0.8

    @pytest.mark.asyncio
    async def test_rules_only_without_provider(self, registry):
        engine = DecisionEngine(None, registry)

        result = await engine.analyze("3+4*2")

        assert result.tools_required == ("code_execution",)

    @pytest.mark.asyncio
    async def test_yes_without_code_tool_uses_rules(self, budget):
        """Test that a registry without code_execution never requires it."""
        async def _echo(params: dict) -> ToolResult:
            return ToolResult(success=True)

        registry = ToolRegistry()
        registry.register(Tool(name="echo", description="Echo", parameters={}, execute=_echo))
        engine, _ = _engine(registry, budget, {"judge": "yes"})

        result = await engine.analyze("3+4*2")

        assert result.tools_required == ()

    def test_provider_requires_budget(self, provider, registry):
        with pytest.raises(ValueError):
            DecisionEngine(provider, registry)

    @pytest.mark.asyncio
    async def test_judgment_prompt_language(self, registry, budget):
        engine, client = _engine(registry, budget, language="zh")

        await engine.analyze("你好")

        assert "请只回答\"是\"或\"否\"" in client.calls[0]["messages"][0]["content"]


# =============================================================================
# decide
# =============================================================================


class TestDecide:
    """Tests for DecisionEngine.decide."""

    @pytest.mark.asyncio
    async def test_use_tool(self, registry, budget):
        engine, client = _engine(registry, budget, {"decide": """```json
{"action": "use_tool", "reasoning": "Needs arithmetic", "confidence": 0.85, "toolName": "code_execution"}
```"""})

        decision = await engine.decide(DecisionContext(user_message="how much is 17 times 23"))

        assert decision.action == DecisionAction.USE_TOOL
        assert decision.tool_name == "code_execution"
        assert decision.confidence == 0.85
        assert client.calls[0]["stage"] == "decide"

    @pytest.mark.asyncio
    async def test_collaboration_and_clarification(self, registry, budget):
        engine, _ = _engine(registry, budget, {"decide": """{
  "action": "collaborate",
  "reasoning": "Cross-cutting",
  "confidence": 1.4,
  "collaborationNeeded": {"expertise": ["security", "ops"], "reason": "Both matter"},
  "clarificationQuestions": ["Which cloud?"]
}"""})

        decision = await engine.decide(DecisionContext(user_message="design our deployment"))

        assert decision.action == DecisionAction.COLLABORATE
        assert decision.confidence == 1.0
        assert decision.collaboration_needed.expertise == ("security", "ops")
        assert decision.clarification_questions == ("Which cloud?",)

    @pytest.mark.asyncio
    async def test_unknown_action_becomes_respond(self, registry, budget):
        engine, _ = _engine(registry, budget, {"decide": '{"action": "dance", "confidence": "high"}'})

        decision = await engine.decide(DecisionContext(user_message="hi"))

        assert decision.action == DecisionAction.RESPOND
        assert decision.confidence == 0.5

    @pytest.mark.asyncio
    async def test_unparseable_answer(self, registry, budget):
        engine, _ = _engine(registry, budget, {"decide": "I think you should respond."})

        decision = await engine.decide(DecisionContext(user_message="hi"))

        assert decision.action == DecisionAction.RESPOND
        assert decision.confidence == 0.1

    @pytest.mark.asyncio
    async def test_provider_failure(self, registry, budget):
        engine, _ = _engine(registry, budget, {"decide": TimeoutError("slow")})

        decision = await engine.decide(DecisionContext(user_message="hi"))

        assert decision.action == DecisionAction.RESPOND
        assert decision.confidence == 0.1
        assert decision.to_dict() == {
            "action": "respond",
            "reasoning": "Decision process failed, will respond directly",
            "confidence": 0.1,
        }
