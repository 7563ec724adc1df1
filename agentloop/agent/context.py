"""
Answer Context Assembly
=======================

Builds the final-answer request from what a run produced:

- Conversation history (passed through unchanged)
- Tool results (see tools_executor)
- Agent analyses: one analysis in single-agent runs, one deliverable per
  roster agent in multi-agent runs

The prompt ends with an instruction telling the model to use tool
results verbatim rather than recomputing them, which is what keeps
"3+4*2" answered as 14 even when the model's own arithmetic drifts.
"""

from dataclasses import dataclass, field

from agentloop.agent.tools_executor import ToolCallRecord, code_was_executed, format_tool_results
from agentloop.utils.logger import Logger

logger = Logger("Context")


@dataclass
class AgentAnalysis:
    agent: str
    text: str


@dataclass
class AssembledAnswer:
    """
    The fully assembled final-answer request.

    Attributes:
        prompt: The user turn carrying results and instructions
        history: Earlier conversation turns in OpenAI format
    """
    prompt: str
    history: list[dict] = field(default_factory=list)

    def to_openai_messages(self) -> list[dict]:
        result = list(self.history)
        result.append({"role": "user", "content": self.prompt})
        return result

    def input_text(self) -> str:
        """All message contents joined, for budget estimation."""
        return " ".join(str(m.get("content", "")) for m in self.to_openai_messages())


_INSTRUCTIONS = {
    "zh": {
        "request": "用户请求: {message}",
        "analysis": "=== 智能体分析 ===",
        "collaboration": "=== 多智能体协作总结 ===",
        "with_code": (
            "基于以上代码执行结果和分析，请为用户提供准确、有用的回答。"
            "请直接使用代码的计算结果，不要重新计算。"
            "如果代码解决了用户的问题，请清晰地展示结果。"
        ),
        "with_tools": "基于以上工具执行结果和分析，请为用户提供准确、有用的回答。请直接使用工具返回的结果。",
        "plain": "基于以上分析，请为用户提供准确、有用的回答。",
    },
    "en": {
        "request": "User request: {message}",
        "analysis": "=== Agent Analysis ===",
        "collaboration": "=== Multi-Agent Collaboration Summary ===",
        "with_code": (
            "Based on the code execution results and analysis above, give the user an accurate, "
            "helpful answer. Use the computed results directly; do not recompute them. "
            "If the code solved the problem, present the result clearly."
        ),
        "with_tools": (
            "Based on the tool results and analysis above, give the user an accurate, "
            "helpful answer. Use the tool results as returned."
        ),
        "plain": "Based on the analysis above, give the user an accurate, helpful answer.",
    },
}


class AnswerContextAssembler:
    """
    Assembles the final-answer request.

    Example:
        assembler = AnswerContextAssembler("en")
        answer = assembler.assemble(
            "3+4*2",
            tool_calls=records,
            analyses=[AgentAnalysis("Analyst", "Evaluate with precedence")]
        )
        await provider.stream(answer.to_openai_messages(), budget)
    """

    def __init__(self, language: str = "zh"):
        self.language = language
        self._text = _INSTRUCTIONS["zh" if language.startswith("zh") else "en"]

    def assemble(
        self,
        message: str,
        history: list[dict] | None = None,
        tool_calls: list[ToolCallRecord] | None = None,
        analyses: list[AgentAnalysis] | None = None,
        multi_agent: bool = False
    ) -> AssembledAnswer:
        """
        Build the request.

        Args:
            message: The user's request
            history: Earlier turns, oldest first
            tool_calls: Tool calls made during the run
            analyses: Agent output to ground the answer in
            multi_agent: Label analyses as a collaboration summary
        """
        tool_calls = tool_calls or []
        analyses = [a for a in (analyses or []) if a.text]

        sections = [self._text["request"].format(message=message)]

        tool_section = format_tool_results(tool_calls, self.language)
        if tool_section:
            sections.append(tool_section)

        if analyses:
            header = self._text["collaboration"] if multi_agent else self._text["analysis"]
            if multi_agent:
                body = "\n\n".join(f"{a.agent}: {a.text}" for a in analyses)
            else:
                body = "\n\n".join(a.text for a in analyses)
            sections.append(f"{header}\n{body}")

        if code_was_executed(tool_calls):
            sections.append(self._text["with_code"])
        elif tool_calls:
            sections.append(self._text["with_tools"])
        else:
            sections.append(self._text["plain"])

        logger.debug(
            "Assembled answer context",
            {"tool_calls": len(tool_calls), "analyses": len(analyses), "history": len(history or [])}
        )

        return AssembledAnswer(prompt="\n\n".join(sections), history=list(history or []))
