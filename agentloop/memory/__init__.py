"""
Memory System
=============

Scored associative memory for the agents of a process.

Agents write two kinds of memory:

1. EPISODIC: one user/assistant exchange, stored after every run
2. SEMANTIC: an agent's reflection, stored when the Reflect stage succeeds

and read them back in the Observe stage by keyword. PROCEDURAL and WORKING
kinds exist for callers that want them; nothing in the loop writes them.

Memory lives for the lifetime of the process. ``export()``/``load()``
give callers a JSON-friendly snapshot if they want to persist it
themselves.

Usage:
    from agentloop.memory import MemoryStore, MemoryQuery, memory_from_conversation

    memory = MemoryStore(max_capacity=1000)
    memory.store(memory_from_conversation("What is asyncio?", "A library..."))

    related = memory.retrieve(MemoryQuery(keywords=["asyncio"], limit=3))
"""

from agentloop.memory.keywords import extract_keywords
from agentloop.memory.store import (
    Memory,
    MemoryKind,
    MemoryQuery,
    MemoryStore,
    memory_from_conversation,
    memory_from_thought,
)

__all__ = [
    "Memory",
    "MemoryKind",
    "MemoryQuery",
    "MemoryStore",
    "extract_keywords",
    "memory_from_conversation",
    "memory_from_thought",
]
