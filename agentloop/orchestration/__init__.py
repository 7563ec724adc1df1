"""
Orchestration Module
====================

Runs requests end to end: classification, single or multi-agent
execution, and the streamed final answer, delivered over a bounded
event channel.
"""

from agentloop.orchestration.channel import EventChannel
from agentloop.orchestration.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    Event,
    RunTranscript,
    SubAgentEvent,
    SubAgentUpdateEvent,
    ThoughtEvent,
)
from agentloop.orchestration.orchestrator import Orchestrator

__all__ = [
    "Orchestrator",
    "EventChannel",
    "Event",
    "ThoughtEvent",
    "SubAgentEvent",
    "SubAgentUpdateEvent",
    "ContentEvent",
    "ErrorEvent",
    "DoneEvent",
    "RunTranscript",
]
