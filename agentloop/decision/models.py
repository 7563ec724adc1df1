"""
Decision Models
===============

Immutable outputs of the decision engine:

- TaskClassification: how a request should be handled (thinking strategy,
  tools, complexity). Produced once per run by ``DecisionEngine.analyze``.
- Decision: the next action an agent should take. Produced by
  ``DecisionEngine.decide``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable


class ThinkingStrategy(str, Enum):
    NONE = "none"
    QUICK = "quick"
    DEEP = "deep"
    STEP_BY_STEP = "step-by-step"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DecisionAction(str, Enum):
    THINK = "think"
    USE_TOOL = "use_tool"
    RESPOND = "respond"
    COLLABORATE = "collaborate"
    CLARIFY = "clarify"


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


@dataclass(frozen=True)
class TaskClassification:
    """
    How a request should be processed.

    Attributes:
        needs_thinking: Whether agent stages should run at all
        thinking_strategy: none, quick, deep or step-by-step
        tools_required: Tool names, in preference order
        confidence: 0-1; LLM-backed results sit above rule-based ones
        reasoning: Short human-readable justification
        estimated_complexity: low, medium or high
    """
    needs_thinking: bool
    thinking_strategy: ThinkingStrategy
    tools_required: tuple[str, ...] = ()
    confidence: float = 0.5
    reasoning: str = ""
    estimated_complexity: Complexity = Complexity.LOW

    def __post_init__(self):
        object.__setattr__(self, "tools_required", tuple(self.tools_required))
        object.__setattr__(self, "confidence", _clamp(self.confidence))

    @property
    def is_direct_answer(self) -> bool:
        return self.thinking_strategy == ThinkingStrategy.NONE and not self.tools_required

    def restricted_to(self, available: Iterable[str]) -> "TaskClassification":
        """Drop required tools that aren't registered."""
        names = set(available)
        kept = tuple(tool for tool in self.tools_required if tool in names)
        if kept == self.tools_required:
            return self
        return replace(self, tools_required=kept)

    def to_dict(self) -> dict[str, Any]:
        """Wire form with camelCase keys."""
        return {
            "needsThinking": self.needs_thinking,
            "thinkingStrategy": self.thinking_strategy.value,
            "toolsRequired": list(self.tools_required),
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "estimatedComplexity": self.estimated_complexity.value,
        }


@dataclass(frozen=True)
class CollaborationRequest:
    expertise: tuple[str, ...] = ()
    reason: str = ""


@dataclass(frozen=True)
class Decision:
    """
    The next action an agent should take.

    ``confidence`` is clamped to [0, 1] on construction.
    """
    action: DecisionAction
    reasoning: str
    confidence: float
    tool_name: str | None = None
    tool_input: dict[str, Any] | None = None
    collaboration_needed: CollaborationRequest | None = None
    clarification_questions: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "confidence", _clamp(self.confidence))
        object.__setattr__(self, "clarification_questions", tuple(self.clarification_questions))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "action": self.action.value,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
        }
        if self.tool_name:
            data["toolName"] = self.tool_name
        if self.tool_input is not None:
            data["toolInput"] = self.tool_input
        if self.collaboration_needed:
            data["collaborationNeeded"] = {
                "expertise": list(self.collaboration_needed.expertise),
                "reason": self.collaboration_needed.reason,
            }
        if self.clarification_questions:
            data["clarificationQuestions"] = list(self.clarification_questions)
        return data


@dataclass
class DecisionContext:
    """Inputs to a next-action decision."""
    user_message: str
    current_goal: str = ""
    conversation_history: list[dict] = field(default_factory=list)
    constraints: list[str] = field(default_factory=list)
