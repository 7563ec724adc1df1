"""
Agent Module
============

The four-stage agent (observe, think, act, reflect), the Thought records
it emits, its role profiles, and assembly of the final-answer request.
"""

from agentloop.agent.context import AgentAnalysis, AnswerContextAssembler, AssembledAnswer
from agentloop.agent.core import Agent, ThoughtSink
from agentloop.agent.models import (
    Alternative,
    ReasoningStep,
    RetrievedMemory,
    SubAgent,
    SubAgentStatus,
    Thought,
    ThoughtKind,
    ThoughtStatus,
)
from agentloop.agent.roster import RoleProfile, default_roster, get_profile
from agentloop.agent.thinking import RawThinking, StructuredThinking, decode_thinking
from agentloop.agent.tools_executor import ToolCallRecord, collect_tool_calls

__all__ = [
    "Agent",
    "ThoughtSink",
    "Thought",
    "ThoughtKind",
    "ThoughtStatus",
    "ReasoningStep",
    "Alternative",
    "RetrievedMemory",
    "SubAgent",
    "SubAgentStatus",
    "RoleProfile",
    "default_roster",
    "get_profile",
    "StructuredThinking",
    "RawThinking",
    "decode_thinking",
    "ToolCallRecord",
    "collect_tool_calls",
    "AgentAnalysis",
    "AnswerContextAssembler",
    "AssembledAnswer",
]
