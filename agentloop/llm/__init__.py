"""
LLM Module
==========

Provider adapter for OpenAI-compatible chat completions, plus the
per-stage token budgets every call is sized with.
"""

from agentloop.llm.client import ChatProvider, StageBudget
from agentloop.llm.budget import STAGE_DEFAULTS, TokenBudget

__all__ = ["ChatProvider", "StageBudget", "TokenBudget", "STAGE_DEFAULTS"]
