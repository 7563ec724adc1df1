"""
Agent Models
============

Records an agent emits while it works:

- Thought: one unit of visible reasoning (an observation, a tool call, a
  reflection). Its status only moves forward:

      waiting -> running -> completed
                         -> error

  ``running -> running`` is allowed so a Thought can be re-emitted while
  its content streams in.

- SubAgent: a progress projection of one roster agent, used only in
  multi-agent runs. Progress never goes backwards.

Both are mutable while their owner works on them; consumers receive
``snapshot()`` copies.
"""

import copy
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from agentloop.errors import InvalidTransitionError


class ThoughtKind(str, Enum):
    OBSERVATION = "observation"
    THOUGHT = "thought"
    ACTION = "action"
    REFLECTION = "reflection"
    TOOL_USE = "tool_use"
    COLLABORATION = "collaboration"
    DECISION = "decision"
    MEMORY_RETRIEVAL = "memory_retrieval"


class ThoughtStatus(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[ThoughtStatus, set[ThoughtStatus]] = {
    ThoughtStatus.WAITING: {ThoughtStatus.RUNNING},
    ThoughtStatus.RUNNING: {ThoughtStatus.RUNNING, ThoughtStatus.COMPLETED, ThoughtStatus.ERROR},
    ThoughtStatus.COMPLETED: set(),
    ThoughtStatus.ERROR: set(),
}

# Id prefix per kind
_ID_PREFIXES = {
    ThoughtKind.OBSERVATION: "obs",
    ThoughtKind.THOUGHT: "think",
    ThoughtKind.ACTION: "action",
    ThoughtKind.REFLECTION: "reflect",
    ThoughtKind.TOOL_USE: "tool",
    ThoughtKind.COLLABORATION: "collab",
    ThoughtKind.DECISION: "decision",
    ThoughtKind.MEMORY_RETRIEVAL: "memory",
}


def new_thought_id(kind: ThoughtKind) -> str:
    return f"{_ID_PREFIXES[kind]}-{uuid.uuid4().hex[:12]}"


@dataclass
class ReasoningStep:
    step: int
    description: str
    conclusion: str = ""
    confidence: float = 0.5


@dataclass
class Alternative:
    option: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    feasibility: float = 0.5


@dataclass
class RetrievedMemory:
    """A memory surfaced during Observe, with its relevance at retrieval time."""
    id: str
    content: str
    relevance: float


@dataclass
class Thought:
    """
    A unit of agent reasoning streamed to the consumer.

    Attributes:
        kind: What stage or event produced it
        title: Localized stage title
        content: Streamed text; replaced wholesale on every update
        status: waiting, running, completed or error
        tool_name / tool_input / tool_output: Set by Act
        reasoning_steps / alternatives: Set by Think when the model
            answered with valid structured JSON
        reflection / improvement: Set by Reflect
        collaborator / shared_context: Set on collaboration and decision
            Thoughts
        memories_retrieved: Set on memory_retrieval Thoughts
        execution_time_ms: Wall time from open to finalize
    """
    kind: ThoughtKind
    title: str
    content: str = ""
    status: ThoughtStatus = ThoughtStatus.WAITING
    id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    tool_name: str | None = None
    tool_input: dict[str, Any] | None = None
    tool_output: dict[str, Any] | None = None
    reasoning_steps: list[ReasoningStep] = field(default_factory=list)
    alternatives: list[Alternative] = field(default_factory=list)
    reflection: str | None = None
    improvement: str | None = None
    collaborator: list[str] | None = None
    shared_context: dict[str, Any] | None = None
    memories_retrieved: list[RetrievedMemory] = field(default_factory=list)
    execution_time_ms: float | None = None

    def __post_init__(self):
        if not self.id:
            self.id = new_thought_id(self.kind)

    @classmethod
    def open(cls, kind: ThoughtKind, title: str, content: str = "", **fields: Any) -> "Thought":
        """Create a Thought already in the running state."""
        thought = cls(kind=kind, title=title, content=content, **fields)
        thought.mark(ThoughtStatus.RUNNING)
        return thought

    def mark(self, status: ThoughtStatus) -> None:
        """
        Move to ``status``.

        Raises:
            InvalidTransitionError: If the move is not a forward edge
        """
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Thought {self.id}: cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def complete(self, content: str | None = None) -> None:
        if content is not None:
            self.content = content
        self.mark(ThoughtStatus.COMPLETED)

    def fail(self, content: str) -> None:
        self.content = content
        self.mark(ThoughtStatus.ERROR)

    @property
    def is_final(self) -> bool:
        return self.status in (ThoughtStatus.COMPLETED, ThoughtStatus.ERROR)

    def snapshot(self) -> "Thought":
        """Deep copy safe to hand to another task."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Wire form; optional fields are omitted when unset."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "title": self.title,
            "content": self.content,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.tool_name is not None:
            data["toolName"] = self.tool_name
        if self.tool_input is not None:
            data["toolInput"] = self.tool_input
        if self.tool_output is not None:
            data["toolOutput"] = self.tool_output
        if self.reasoning_steps:
            data["reasoningSteps"] = [asdict(step) for step in self.reasoning_steps]
        if self.alternatives:
            data["alternatives"] = [asdict(alt) for alt in self.alternatives]
        if self.reflection is not None:
            data["reflection"] = self.reflection
        if self.improvement is not None:
            data["improvement"] = self.improvement
        if self.collaborator is not None:
            data["collaborator"] = list(self.collaborator)
        if self.shared_context is not None:
            data["sharedContext"] = self.shared_context
        if self.memories_retrieved:
            data["memoriesRetrieved"] = [asdict(m) for m in self.memories_retrieved]
        if self.execution_time_ms is not None:
            data["executionTime"] = self.execution_time_ms
        return data


# ==============================================================================
# SubAgent
# ==============================================================================

class SubAgentStatus(str, Enum):
    THINKING = "thinking"
    WORKING = "working"
    COMPLETED = "completed"
    BLOCKED = "blocked"


@dataclass
class SubAgent:
    """
    Progress of one roster agent in a multi-agent run.

    Attributes:
        id: Unique per run
        name: Localized display name
        role: Localized role label
        expertise: Localized expertise areas
        status: thinking, working, completed or blocked
        progress: 0-100, never decreasing
        deliverable: The agent's reflection once it finishes
        current_task: What the agent is doing now
    """
    id: str
    name: str
    role: str
    expertise: list[str] = field(default_factory=list)
    status: SubAgentStatus = SubAgentStatus.THINKING
    progress: int = 0
    deliverable: str | None = None
    current_task: str | None = None

    def advance(self, progress: int, status: SubAgentStatus | None = None) -> None:
        """
        Move progress forward and optionally change status.

        Raises:
            InvalidTransitionError: If progress would decrease or leave
                0-100, or a completed agent would change status
        """
        if progress < self.progress or progress > 100:
            raise InvalidTransitionError(
                f"SubAgent {self.id}: progress cannot move from {self.progress} to {progress}"
            )
        if status is not None and status != self.status and self.status == SubAgentStatus.COMPLETED:
            raise InvalidTransitionError(f"SubAgent {self.id}: already completed")

        self.progress = progress
        if status is not None:
            self.status = status

    def snapshot(self) -> "SubAgent":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "expertise": list(self.expertise),
            "status": self.status.value,
            "progress": self.progress,
        }
        if self.deliverable is not None:
            data["deliverable"] = self.deliverable
        if self.current_task is not None:
            data["currentTask"] = self.current_task
        return data
