"""
Decision Engine
===============

Decides how a request is handled and what an agent should do next.

Two-tier classification:

    User Message
         │
         ▼
    Judgment call: "does this need code execution?"  (10 tokens, temp 0.1)
         │
    ┌────┼──────────────┬─────────────────────┐
    yes  no             ambiguous / failed
    │    │              │
    │    ▼              ▼
    │  rule table       rule table (as is)
    │  minus code_execution
    │  (empty -> direct answer)
    ▼
    step-by-step + code_execution

The model is better at telling what needs computing, but a 10-token
answer is easy to misparse, so anything that isn't clearly yes or no goes
to the deterministic rules in ``agentloop.decision.rules``.

Required tools are always restricted to what the registry actually holds.

The engine also exposes keyword tool selection, tool-input synthesis and
the next-action decision used by the agents' Act stage.
"""

import json
import re
from typing import Any

from agentloop.decision.models import (
    CollaborationRequest,
    Complexity,
    Decision,
    DecisionAction,
    DecisionContext,
    TaskClassification,
    ThinkingStrategy,
)
from agentloop.decision.rules import classify_by_rules, select_tools
from agentloop.decision.synthesis import synthesize_tool_input
from agentloop.llm.budget import TokenBudget
from agentloop.llm.client import ChatProvider
from agentloop.tools import ToolRegistry
from agentloop.utils.logger import Logger

logger = Logger("DecisionEngine")

CODE_TOOL = "code_execution"

_YES = re.compile(r"^(?:yes|是|需要)(?![a-z])")
_NO = re.compile(r"^(?:no|否|不是|不需要)(?![a-z])")
_ANSWER_NOISE = "\"'「」“”*`.。!！ \n\t"

_JSON_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


# ==============================================================================
# Prompts
# ==============================================================================

_JUDGMENT_PROMPT_ZH = """你是一个智能助手的决策引擎。请判断用户的问题是否需要通过编写和执行代码来解决。

用户问题：「{message}」
{context}
判断标准：
1. 需要代码执行的情况：
   - 数学计算（如：计算表达式、统计数字等）
   - 数据处理和分析
   - 算法实现和验证
   - 字符串处理（如：计算字符数量、查找模式等）
   - 复杂逻辑运算

2. 不需要代码执行的情况：
   - 基础常识问答
   - 概念解释
   - 建议和意见
   - 创意写作
   - 简单对话

请只回答"是"或"否"，不要添加任何解释。

示例：
- "计算 123 + 456" → 是
- "什么是人工智能" → 否
- "你好，今天天气怎么样" → 否
- "分析这组数据：[1,2,3,4,5]" → 是

回答："""

_JUDGMENT_PROMPT_EN = """You are the decision engine of an assistant. Decide whether the user's request must be solved by writing and running code.

User request: "{message}"
{context}
Needs code execution:
   - Arithmetic (evaluating expressions, counting numbers)
   - Data processing and analysis
   - Implementing or checking an algorithm
   - String processing (counting characters, finding patterns)
   - Complex logical computation

Does not need code execution:
   - General knowledge
   - Explaining concepts
   - Advice and opinions
   - Creative writing
   - Small talk

Answer with only "yes" or "no". Do not explain.

Examples:
- "calculate 123 + 456" -> yes
- "what is artificial intelligence" -> no
- "hi, how is the weather today" -> no
- "analyze this data: [1,2,3,4,5]" -> yes

Answer:"""

_DECISION_PROMPT_ZH = """作为智能体，请分析当前情况并决定下一步行动：

用户请求：{message}
当前目标：{goal}
约束条件：{constraints}

可用工具：
{tools}

对话历史：
{history}

请决定下一步应该：
1. think - 继续深度思考
2. use_tool - 使用工具
3. respond - 直接回答用户
4. collaborate - 需要多智能体协作
5. clarify - 需要澄清用户需求

请以JSON格式回答：
{{
  "action": "选择的行动",
  "reasoning": "详细的推理过程",
  "confidence": 0.8,
  "toolName": "如果选择use_tool，指定工具名称",
  "collaborationNeeded": {{"expertise": ["需要的专业领域"], "reason": "协作原因"}},
  "clarificationQuestions": ["澄清问题1", "澄清问题2"]
}}"""

_DECISION_PROMPT_EN = """As an agent, analyze the current situation and decide the next action:

User Request: {message}
Current Goal: {goal}
Constraints: {constraints}

Available Tools:
{tools}

Conversation History:
{history}

Please decide what to do next:
1. think - Continue deep thinking
2. use_tool - Use a tool
3. respond - Respond directly to user
4. collaborate - Need multi-agent collaboration
5. clarify - Need to clarify user requirements

Answer in JSON format:
{{
  "action": "chosen_action",
  "reasoning": "detailed reasoning process",
  "confidence": 0.8,
  "toolName": "if use_tool, specify tool name",
  "collaborationNeeded": {{"expertise": ["required expertise areas"], "reason": "collaboration reason"}},
  "clarificationQuestions": ["clarification question 1", "clarification question 2"]
}}"""


def parse_judgment(answer: str) -> bool | None:
    """
    Read a yes/no judgment.

    Returns:
        True for yes, False for no, None when the answer is neither
    """
    text = answer.strip().strip(_ANSWER_NOISE).lower()
    if _YES.match(text):
        return True
    if _NO.match(text):
        return False
    return None


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull a JSON object out of a model answer.

    Strips code fences and keeps the span from the first "{" to the last
    "}". Returns {} when nothing parses to an object.
    """
    cleaned = _JSON_FENCE.sub("", text)
    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last > first:
        cleaned = cleaned[first:last + 1]
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class DecisionEngine:
    """
    Task classification, tool selection and next-action decisions.

    Example:
        engine = DecisionEngine(provider, registry, TokenBudget(config.model))

        classification = await engine.analyze("3+4*2")
        classification.tools_required   # ("code_execution",)

        engine.synthesize_tool_input("code_execution", "3+4*2")
        # {"code": "3+4*2", "language": "javascript"}
    """

    def __init__(
        self,
        provider: ChatProvider | None,
        tools: ToolRegistry,
        budget: TokenBudget | None = None,
        language: str = "zh"
    ):
        """
        Initialize the engine.

        Args:
            provider: Model used for judgments; None means rules only
            tools: Registry whose tool names bound every selection
            budget: Token budgets (required when a provider is given)
            language: "zh" or "en", for prompts and reasoning text
        """
        if provider is not None and budget is None:
            raise ValueError("A token budget is required when a provider is given")

        self.provider = provider
        self.tools = tools
        self.budget = budget
        self.language = language

    @property
    def _zh(self) -> bool:
        return self.language.startswith("zh")

    # ==========================================================================
    # Classification
    # ==========================================================================

    async def analyze(self, message: str, context: str | None = None) -> TaskClassification:
        """
        Classify a request.

        Never raises for provider problems; those fall back to the rules.
        """
        available = self.tools.list_names()
        rules = classify_by_rules(message, self.language).restricted_to(available)

        if self.provider is None:
            return rules

        verdict = await self._judge_code_execution(message, context)

        if verdict is None:
            return rules

        if verdict:
            if CODE_TOOL not in available:
                logger.warning("Judgment asked for code execution but the tool is not registered")
                return rules
            return TaskClassification(
                needs_thinking=True,
                thinking_strategy=ThinkingStrategy.STEP_BY_STEP,
                tools_required=(CODE_TOOL,),
                confidence=0.9,
                reasoning=(
                    "模型判断此问题需要代码执行来解决" if self._zh
                    else "The model judged that this request needs code execution"
                ),
                estimated_complexity=Complexity.MEDIUM
            )

        remaining = tuple(tool for tool in rules.tools_required if tool != CODE_TOOL)
        if remaining:
            return TaskClassification(
                needs_thinking=rules.needs_thinking,
                thinking_strategy=rules.thinking_strategy,
                tools_required=remaining,
                confidence=rules.confidence,
                reasoning=rules.reasoning,
                estimated_complexity=rules.estimated_complexity
            )

        return TaskClassification(
            needs_thinking=False,
            thinking_strategy=ThinkingStrategy.NONE,
            tools_required=(),
            confidence=0.85,
            reasoning=(
                "模型判断此问题可以直接回答，无需代码执行" if self._zh
                else "The model judged that this request can be answered directly"
            ),
            estimated_complexity=Complexity.LOW
        )

    async def _judge_code_execution(self, message: str, context: str | None) -> bool | None:
        template = _JUDGMENT_PROMPT_ZH if self._zh else _JUDGMENT_PROMPT_EN
        context_line = ""
        if context:
            context_line = f"对话上下文：{context}\n" if self._zh else f"Conversation context: {context}\n"
        prompt = template.format(message=message, context=context_line)

        try:
            answer = await self.provider.complete(
                [{"role": "user", "content": prompt}],
                self.budget.for_stage("judge")
            )
        except Exception as e:
            logger.error("Judgment call failed, using rule classification", e)
            return None

        verdict = parse_judgment(answer)
        if verdict is None:
            logger.warning(f"Ambiguous judgment answer: {answer!r}")
        else:
            logger.debug(f"Code execution judgment: {verdict}")
        return verdict

    # ==========================================================================
    # Tool selection & input synthesis
    # ==========================================================================

    def select_tools(self, message: str) -> list[str]:
        """Registered tools whose keyword markers appear in the message."""
        return select_tools(message, self.tools.list_names())

    def synthesize_tool_input(self, tool_name: str, message: str) -> dict[str, Any]:
        return synthesize_tool_input(tool_name, message)

    # ==========================================================================
    # Next-action decision
    # ==========================================================================

    async def decide(self, context: DecisionContext) -> Decision:
        """
        Ask the model for the next action.

        Any failure (no provider, provider error, unparseable answer) gives
        a ``respond`` decision with confidence 0.1.
        """
        if self.provider is None:
            return self._fallback_decision()

        template = _DECISION_PROMPT_ZH if self._zh else _DECISION_PROMPT_EN
        tool_lines = "\n".join(
            f"- {tool.name}: {tool.description}" for tool in self.tools.get_all()
        )
        history = "\n".join(
            f"{turn.get('role', '')}: {turn.get('content', '')}"
            for turn in context.conversation_history[-3:]
        )
        prompt = template.format(
            message=context.user_message,
            goal=context.current_goal,
            constraints=", ".join(context.constraints),
            tools=tool_lines,
            history=history
        )

        try:
            answer = await self.provider.complete(
                [{"role": "user", "content": prompt}],
                self.budget.for_stage("decide")
            )
        except Exception as e:
            logger.error("Decision call failed", e)
            return self._fallback_decision()

        parsed = extract_json_object(answer)
        if not parsed:
            logger.warning("Decision answer was not a JSON object")
            return self._fallback_decision()

        return self._decision_from(parsed)

    def _decision_from(self, parsed: dict[str, Any]) -> Decision:
        try:
            action = DecisionAction(parsed.get("action"))
        except ValueError:
            action = DecisionAction.RESPOND

        confidence = parsed.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = 0.5

        tool_name = parsed.get("toolName")
        if not isinstance(tool_name, str) or not tool_name:
            tool_name = None

        tool_input = parsed.get("toolInput")
        if not isinstance(tool_input, dict):
            tool_input = None

        collaboration = None
        raw_collaboration = parsed.get("collaborationNeeded")
        if isinstance(raw_collaboration, dict):
            expertise = raw_collaboration.get("expertise")
            collaboration = CollaborationRequest(
                expertise=tuple(str(e) for e in expertise) if isinstance(expertise, list) else (),
                reason=str(raw_collaboration.get("reason", ""))
            )

        questions = parsed.get("clarificationQuestions")
        if not isinstance(questions, list):
            questions = []

        reasoning = parsed.get("reasoning")
        return Decision(
            action=action,
            reasoning=reasoning if isinstance(reasoning, str) else "No reasoning provided",
            confidence=confidence,
            tool_name=tool_name,
            tool_input=tool_input,
            collaboration_needed=collaboration,
            clarification_questions=tuple(str(q) for q in questions)
        )

    def _fallback_decision(self) -> Decision:
        return Decision(
            action=DecisionAction.RESPOND,
            reasoning=(
                "决策过程出现错误，将直接回答" if self._zh
                else "Decision process failed, will respond directly"
            ),
            confidence=0.1
        )
