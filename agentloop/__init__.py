"""
AgentLoop - Observe, Think, Act, Reflect
========================================

Orchestration core of an LLM-backed assistant: classify a request, run one
or more agents through observe → think → act → reflect, stream partial
results to a consumer, and merge tool outputs with model output into a
final answer.

This package provides:
- Decision engine (LLM judgment with rule fallback, tool selection)
- Four-stage agents emitting streamed Thoughts
- Tool registry with a code-safety gate and built-in tools
- Associative memory store with decay and eviction
- Orchestrator streaming events over a bounded channel
"""

__version__ = "1.0.0"
