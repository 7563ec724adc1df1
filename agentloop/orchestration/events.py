"""
Run Events
==========

Everything a run streams to its consumer:

    agent_thought_update   a Thought snapshot (merge by id)
    sub_agent              a roster agent appeared (multi-agent runs)
    sub_agent_update       a roster agent made progress
    content                a fragment of the final answer
    error                  the run failed; nothing follows
    done                   the run finished; nothing follows

``RunTranscript`` is a reference consumer: it applies events the way a UI
should, replacing Thoughts by id instead of appending them.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from agentloop.agent.models import SubAgent, SubAgentStatus, Thought, ThoughtStatus


@dataclass
class ThoughtEvent:
    type: ClassVar[str] = "agent_thought_update"
    agent_thought: Thought

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "agent_thought": self.agent_thought.to_dict()}


@dataclass
class SubAgentEvent:
    type: ClassVar[str] = "sub_agent"
    sub_agent: SubAgent

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "sub_agent": self.sub_agent.to_dict()}


@dataclass
class SubAgentUpdateEvent:
    type: ClassVar[str] = "sub_agent_update"
    sub_agent_id: str
    progress: int
    status: SubAgentStatus
    deliverable: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "type": self.type,
            "sub_agent_id": self.sub_agent_id,
            "progress": self.progress,
            "status": self.status.value,
        }
        if self.deliverable is not None:
            data["deliverable"] = self.deliverable
        return data


@dataclass
class ContentEvent:
    type: ClassVar[str] = "content"
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass
class ErrorEvent:
    type: ClassVar[str] = "error"
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "error": self.error}


@dataclass
class DoneEvent:
    type: ClassVar[str] = "done"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


Event = Union[ThoughtEvent, SubAgentEvent, SubAgentUpdateEvent, ContentEvent, ErrorEvent, DoneEvent]


@dataclass
class RunTranscript:
    """
    Accumulated view of a run.

    Attributes:
        thoughts: Latest snapshot per Thought id, in first-seen order
        status_history: Every status each Thought id was emitted with
        sub_agents: Latest state per SubAgent id
        answer: Concatenated content events
        error: Message of the terminal error event, if any
        done: Whether a done event arrived
    """
    thoughts: dict[str, Thought] = field(default_factory=dict)
    status_history: dict[str, list[ThoughtStatus]] = field(default_factory=dict)
    sub_agents: dict[str, SubAgent] = field(default_factory=dict)
    answer: str = ""
    error: str | None = None
    done: bool = False

    def apply(self, event: Event) -> None:
        if isinstance(event, ThoughtEvent):
            thought = event.agent_thought
            self.thoughts[thought.id] = thought
            self.status_history.setdefault(thought.id, []).append(thought.status)
        elif isinstance(event, SubAgentEvent):
            self.sub_agents[event.sub_agent.id] = event.sub_agent
        elif isinstance(event, SubAgentUpdateEvent):
            sub_agent = self.sub_agents.get(event.sub_agent_id)
            if sub_agent is not None:
                sub_agent.progress = event.progress
                sub_agent.status = event.status
                if event.deliverable is not None:
                    sub_agent.deliverable = event.deliverable
        elif isinstance(event, ContentEvent):
            self.answer += event.content
        elif isinstance(event, ErrorEvent):
            self.error = event.error
        elif isinstance(event, DoneEvent):
            self.done = True

    @property
    def finished(self) -> bool:
        return self.done or self.error is not None

    def thoughts_of(self, kind) -> list[Thought]:
        return [t for t in self.thoughts.values() if t.kind == kind]
