"""
Memory Store
============

In-process associative memory shared by every agent of a run.

Each memory carries an importance in [0, 1], a keyword list and access
statistics. Two scores drive the store:

Relevance (ranking on retrieve):
    importance
    + 0.3 x number of query keywords that match
    + 0.1 x ln(retrieval_count + 1)
    + 0.2 x exp(-0.01 x days since creation)

Decayed score (eviction on cleanup):
    importance x exp(-decay_factor x days since last access)
    + 0.1 x ln(retrieval_count + 1)

When a ``store()`` pushes the count past ``max_capacity``, cleanup keeps
the best ``floor(0.8 x max_capacity)`` memories by decayed score and drops
the rest. Retrieval is a feedback signal: every returned memory gets its
``retrieval_count`` bumped and ``last_accessed`` refreshed.

All mutations happen under one ``threading.RLock`` so the store can be
shared by concurrent agents.

Usage:
    store = MemoryStore(max_capacity=1000)
    memory_id = store.store(memory_from_conversation("Hi", "Hello!"))

    related = store.retrieve(MemoryQuery(keywords=["hello"], limit=3))
"""

import math
import threading
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from agentloop.memory.keywords import extract_keywords
from agentloop.utils.config import MemoryConfig
from agentloop.utils.logger import Logger

logger = Logger("Memory")

SECONDS_PER_DAY = 60 * 60 * 24

# Fraction of max_capacity kept by cleanup
RETAIN_RATIO = 0.8


class MemoryKind(str, Enum):
    EPISODIC = "episodic"
    SEMANTIC = "semantic"
    PROCEDURAL = "procedural"
    WORKING = "working"


@dataclass
class Memory:
    """
    A retained unit of context.

    ``id``, ``retrieval_count`` and ``last_accessed`` are owned by the store;
    whatever the caller puts there is overwritten by ``store()``.
    """
    kind: MemoryKind
    content: str
    keywords: list[str] = field(default_factory=list)
    importance: float = 0.5
    timestamp: datetime | None = None
    associated_tasks: list[str] = field(default_factory=list)
    id: str = ""
    retrieval_count: int = 0
    last_accessed: datetime | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        data["last_accessed"] = self.last_accessed.isoformat() if self.last_accessed else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Memory":
        def _parse(value):
            if isinstance(value, datetime) or value is None:
                return value
            return datetime.fromisoformat(value)

        return cls(
            kind=MemoryKind(data["kind"]),
            content=data["content"],
            keywords=list(data.get("keywords", [])),
            importance=float(data.get("importance", 0.5)),
            timestamp=_parse(data.get("timestamp")),
            associated_tasks=list(data.get("associated_tasks", [])),
            id=data.get("id", ""),
            retrieval_count=int(data.get("retrieval_count", 0)),
            last_accessed=_parse(data.get("last_accessed")),
        )


@dataclass
class MemoryQuery:
    """
    Retrieval filter. Unset fields don't filter.

    Attributes:
        keywords: Match if any keyword is in the memory's keywords or content
        time_range: Inclusive (start, end) on the creation timestamp
        kind: Only memories of this kind
        min_importance: Only memories at least this important
        limit: Maximum number of results
    """
    keywords: list[str] = field(default_factory=list)
    time_range: tuple[datetime, datetime] | None = None
    kind: MemoryKind | None = None
    min_importance: float | None = None
    limit: int | None = None


def _copy(memory: Memory) -> Memory:
    return replace(
        memory,
        keywords=list(memory.keywords),
        associated_tasks=list(memory.associated_tasks)
    )


def _keyword_matches(memory: Memory, keywords: list[str]) -> int:
    content = memory.content.lower()
    return sum(
        1 for keyword in keywords
        if keyword in memory.keywords or keyword.lower() in content
    )


class MemoryStore:
    """
    Scored associative store with decay and capacity eviction.

    Example:
        store = MemoryStore(max_capacity=10)
        for i in range(11):
            store.store(Memory(kind=MemoryKind.SEMANTIC, content=f"fact {i}",
                               importance=i / 10))
        len(store)  # 8
    """

    def __init__(
        self,
        max_capacity: int = 1000,
        decay_factor: float = 0.01,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize an empty store.

        Args:
            max_capacity: Hard upper bound on stored memories
            decay_factor: Daily decay rate used by cleanup
            clock: Source of "now" (injectable for tests)
        """
        if max_capacity < 1:
            raise ValueError("max_capacity must be at least 1")

        self.max_capacity = max_capacity
        self.decay_factor = decay_factor
        self._clock = clock
        self._memories: dict[str, Memory] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: MemoryConfig) -> "MemoryStore":
        return cls(max_capacity=config.max_capacity, decay_factor=config.decay_factor)

    def __len__(self) -> int:
        with self._lock:
            return len(self._memories)

    # ==========================================================================
    # Store / Retrieve
    # ==========================================================================

    def store(self, memory: Memory) -> str:
        """
        Insert a memory and evict if the store is over capacity.

        Returns:
            The id assigned to the memory
        """
        with self._lock:
            now = self._clock()
            stored = _copy(memory)
            stored.id = self._generate_id(now)
            stored.importance = min(max(stored.importance, 0.0), 1.0)
            stored.timestamp = stored.timestamp or now
            stored.retrieval_count = 0
            stored.last_accessed = now

            self._memories[stored.id] = stored
            logger.debug(f"Stored {stored.kind.value} memory {stored.id}")

            if len(self._memories) > self.max_capacity:
                self._cleanup(now)

            return stored.id

    def retrieve(self, query: MemoryQuery) -> list[Memory]:
        """
        Filter, rank by relevance, apply the limit and bump access stats.

        Only the memories actually returned are counted as retrieved.

        Returns:
            Copies of the matching memories, most relevant first
        """
        return [memory for memory, _ in self.retrieve_scored(query)]

    def retrieve_scored(self, query: MemoryQuery) -> list[tuple[Memory, float]]:
        """Like retrieve(), paired with the score each memory was ranked by."""
        with self._lock:
            now = self._clock()
            results = list(self._memories.values())

            if query.keywords:
                results = [m for m in results if _keyword_matches(m, query.keywords) > 0]

            if query.time_range:
                start, end = query.time_range
                results = [m for m in results if start <= m.timestamp <= end]

            if query.kind is not None:
                results = [m for m in results if m.kind == query.kind]

            if query.min_importance is not None:
                results = [m for m in results if m.importance >= query.min_importance]

            scored = [(m, self.relevance_score(m, query, now)) for m in results]
            scored.sort(key=lambda pair: pair[1], reverse=True)

            if query.limit is not None:
                scored = scored[:query.limit]

            for memory, _ in scored:
                memory.retrieval_count += 1
                memory.last_accessed = now

            return [(_copy(m), score) for m, score in scored]

    def relevance_score(
        self,
        memory: Memory,
        query: MemoryQuery,
        now: datetime | None = None
    ) -> float:
        """Ranking score used by retrieve()."""
        now = now or self._clock()
        score = memory.importance

        if query.keywords:
            score += _keyword_matches(memory, query.keywords) * 0.3

        score += math.log(memory.retrieval_count + 1) * 0.1

        days_since_creation = (now - memory.timestamp).total_seconds() / SECONDS_PER_DAY
        score += math.exp(-days_since_creation * 0.01) * 0.2
        return score

    def decayed_score(self, memory: Memory, now: datetime | None = None) -> float:
        """Eviction score used by cleanup."""
        now = now or self._clock()
        days_since_access = (now - memory.last_accessed).total_seconds() / SECONDS_PER_DAY
        decayed_importance = memory.importance * math.exp(-self.decay_factor * days_since_access)
        return decayed_importance + math.log(memory.retrieval_count + 1) * 0.1

    def _cleanup(self, now: datetime) -> None:
        keep_count = math.floor(self.max_capacity * RETAIN_RATIO)
        ranked = sorted(
            self._memories.values(),
            key=lambda m: self.decayed_score(m, now),
            reverse=True
        )

        removed = ranked[keep_count:]
        for memory in removed:
            del self._memories[memory.id]

        logger.info(f"Memory cleanup: kept {keep_count}, removed {len(removed)}")

    def _generate_id(self, now: datetime) -> str:
        return f"mem_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"

    # ==========================================================================
    # Maintenance
    # ==========================================================================

    def get(self, memory_id: str) -> Memory | None:
        """Read a memory without counting it as a retrieval."""
        with self._lock:
            memory = self._memories.get(memory_id)
            return _copy(memory) if memory else None

    def update_importance(self, memory_id: str, importance: float) -> bool:
        """Set importance (clamped to [0, 1]). False if the id is unknown."""
        with self._lock:
            memory = self._memories.get(memory_id)
            if memory is None:
                return False
            memory.importance = min(max(importance, 0.0), 1.0)
            return True

    def add_keywords(self, memory_id: str, keywords: list[str]) -> bool:
        """Merge keywords into a memory, keeping order and dropping duplicates."""
        with self._lock:
            memory = self._memories.get(memory_id)
            if memory is None:
                return False
            memory.keywords = list(dict.fromkeys([*memory.keywords, *keywords]))
            return True

    def stats(self) -> dict[str, Any]:
        """Counts by kind, average importance and the five most retrieved memories."""
        with self._lock:
            memories = list(self._memories.values())
            by_kind = {kind.value: 0 for kind in MemoryKind}
            for memory in memories:
                by_kind[memory.kind.value] += 1

            average = sum(m.importance for m in memories) / len(memories) if memories else 0.0
            most_accessed = sorted(memories, key=lambda m: m.retrieval_count, reverse=True)[:5]

            return {
                "total_memories": len(memories),
                "by_kind": by_kind,
                "average_importance": average,
                "most_accessed": [_copy(m) for m in most_accessed],
            }

    def export(self) -> list[dict]:
        """Snapshot every memory as a JSON-friendly dict."""
        with self._lock:
            return [m.to_dict() for m in self._memories.values()]

    def load(self, records: list[dict]) -> None:
        """Replace the store's contents with exported records."""
        with self._lock:
            now = self._clock()
            self._memories = {}
            for record in records:
                memory = Memory.from_dict(record)
                memory.id = memory.id or self._generate_id(now)
                memory.timestamp = memory.timestamp or now
                memory.last_accessed = memory.last_accessed or now
                self._memories[memory.id] = memory
            logger.info(f"Loaded {len(self._memories)} memories")

    def clear(self) -> None:
        with self._lock:
            self._memories.clear()

    @staticmethod
    def extract_keywords(text: str) -> list[str]:
        return extract_keywords(text)


# ==============================================================================
# Factories
# ==============================================================================

def memory_from_conversation(
    user_message: str,
    assistant_response: str,
    importance: float = 0.5,
    language: str = "zh"
) -> Memory:
    """Episodic memory of one user/assistant exchange."""
    if language.startswith("zh"):
        content = f"用户: {user_message}\n助手: {assistant_response}"
    else:
        content = f"User: {user_message}\nAssistant: {assistant_response}"

    return Memory(
        kind=MemoryKind.EPISODIC,
        content=content,
        keywords=extract_keywords(content),
        importance=importance
    )


def memory_from_thought(
    kind: str,
    title: str,
    content: str,
    importance: float = 0.7
) -> Memory:
    """Semantic memory of an agent conclusion, tagged with the Thought kind."""
    return Memory(
        kind=MemoryKind.SEMANTIC,
        content=f"{title}: {content}",
        keywords=extract_keywords(f"{title} {content}"),
        importance=importance,
        associated_tasks=[kind]
    )
