"""
Tool Call Records
=================

Collects the tool calls agents made during a run so the final answer can
be grounded in them.

Act stores each call on its Thought (``tool_name``, ``tool_input``,
``tool_output``). This module lifts those into ``ToolCallRecord``s and
renders them for the answer prompt:

    === 工具执行结果 ===
    工具 1: code_execution
    输入: {"code": "3+4*2", "language": "javascript"}
    输出: {"success": true, "result": "14", ...}
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable

from agentloop.agent.models import Thought, ThoughtKind
from agentloop.utils.logger import Logger

logger = Logger("ToolCalls")

CODE_TOOL = "code_execution"


@dataclass
class ToolCallRecord:
    """
    One executed tool call.

    Attributes:
        name: The tool name
        arguments: Input the tool received
        output: ``ToolResult.to_dict()`` of the call
        agent: Display name of the agent that made the call
    """
    name: str
    arguments: dict[str, Any]
    output: dict[str, Any]
    agent: str = ""

    @property
    def succeeded(self) -> bool:
        return bool(self.output.get("success"))

    def to_prompt_block(self, index: int, language: str = "zh") -> str:
        arguments = json.dumps(self.arguments, ensure_ascii=False)
        output = json.dumps(self.output, ensure_ascii=False, default=str)
        if language.startswith("zh"):
            return f"工具 {index}: {self.name}\n输入: {arguments}\n输出: {output}"
        return f"Tool {index}: {self.name}\nInput: {arguments}\nOutput: {output}"


def collect_tool_calls(thoughts: Iterable[Thought], agent: str = "") -> list[ToolCallRecord]:
    """
    Tool calls recorded on action Thoughts, in order.

    Actions that never ran a tool (no tool found, unknown tool) are skipped.
    """
    records = []
    for thought in thoughts:
        if thought.kind != ThoughtKind.ACTION or not thought.tool_name:
            continue
        if thought.tool_output is None:
            continue
        records.append(ToolCallRecord(
            name=thought.tool_name,
            arguments=dict(thought.tool_input or {}),
            output=dict(thought.tool_output),
            agent=agent
        ))

    logger.debug(f"Collected {len(records)} tool calls")
    return records


def code_was_executed(records: Iterable[ToolCallRecord]) -> bool:
    """Whether code execution ran successfully in this run."""
    return any(record.name == CODE_TOOL and record.succeeded for record in records)


def format_tool_results(records: list[ToolCallRecord], language: str = "zh") -> str:
    """The tool section of the answer prompt, or "" when nothing ran."""
    if not records:
        return ""
    header = "=== 工具执行结果 ===" if language.startswith("zh") else "=== Tool Results ==="
    blocks = [record.to_prompt_block(i + 1, language) for i, record in enumerate(records)]
    return header + "\n" + "\n\n".join(blocks)
