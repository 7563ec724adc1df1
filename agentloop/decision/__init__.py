"""
Decision Module
===============

Request classification (LLM judgment with a rule-table fallback), keyword
tool selection, tool-input synthesis and next-action decisions.
"""

from agentloop.decision.engine import DecisionEngine, extract_json_object, parse_judgment
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

__all__ = [
    "DecisionEngine",
    "TaskClassification",
    "Decision",
    "DecisionAction",
    "DecisionContext",
    "CollaborationRequest",
    "ThinkingStrategy",
    "Complexity",
    "classify_by_rules",
    "select_tools",
    "synthesize_tool_input",
    "parse_judgment",
    "extract_json_object",
]
