"""
Agent Core
==========

One agent working a request through four stages.

Stage Loop:
    User Message
         │
         ▼
    Observe   (recall related memories, analyze the request)
         │
         ▼
    Think     (structured reasoning + alternatives as JSON)
         │
         ▼
    Act       (pick a tool, synthesize its input, run it)
         │
         ▼
    Reflect   (critique the process, suggest improvements,
               remember the conclusion)

Every stage opens a running Thought, emits it, streams the model answer
into its content (emitting a snapshot per delta), then finalizes it to
completed or error and emits it once more. Provider failures become
error Thoughts; the caller decides whether to continue.

The agent never talks to the consumer directly. It awaits a ``ThoughtSink``
for every emission, so a slow consumer slows the agent down.
"""

import time
from typing import Any, Awaitable, Callable

from agentloop.agent import prompts
from agentloop.agent.models import RetrievedMemory, Thought, ThoughtKind
from agentloop.agent.roster import RoleProfile
from agentloop.agent.thinking import RawThinking, decode_thinking
from agentloop.decision import DecisionAction, DecisionContext, DecisionEngine
from agentloop.llm import ChatProvider, TokenBudget
from agentloop.memory import MemoryQuery, MemoryStore, memory_from_thought
from agentloop.tools import ToolRegistry
from agentloop.utils.logger import Logger

logger = Logger("Agent")

ThoughtSink = Callable[[Thought], Awaitable[None]]

MEMORY_RECALL_LIMIT = 3


async def _discard(thought: Thought) -> None:
    return None


class Agent:
    """
    A role-specialised agent.

    Example:
        agent = Agent(get_profile("analyst", "en"), provider, registry,
                      engine, TokenBudget(config.model), memory=store,
                      language="en", sink=send_thought)

        observation = await agent.observe("Compare SQLite and Postgres")
        thinking = await agent.think(observation.content, "Compare SQLite and Postgres")
        reflection = await agent.reflect([observation, thinking], thinking.content)
    """

    def __init__(
        self,
        profile: RoleProfile,
        provider: ChatProvider,
        tools: ToolRegistry,
        decisions: DecisionEngine,
        budget: TokenBudget,
        memory: MemoryStore | None = None,
        language: str = "zh",
        streaming: bool = True,
        sink: ThoughtSink | None = None
    ):
        """
        Initialize the agent.

        Args:
            profile: Role data; ``profile.label`` is the prompt persona
            provider: Chat model
            tools: Tools the Act stage may run
            decisions: Tool selection, input synthesis, next-action decisions
            budget: Per-stage token budgets
            memory: Store for recall (Observe) and conclusions (Reflect)
            language: "zh" or "en"
            streaming: Stream stage answers, or one request per stage
            sink: Awaited with a snapshot of every Thought update
        """
        self.profile = profile
        self.provider = provider
        self.tools = tools
        self.decisions = decisions
        self.budget = budget
        self.memory = memory
        self.language = language
        self.streaming = streaming
        self.sink = sink or _discard
        self.logger = logger.child(profile.key)

    @property
    def name(self) -> str:
        return self.profile.name

    def _label(self, key: str, **values: Any) -> str:
        return prompts.label(self.language, key, **values)

    async def _emit(self, thought: Thought) -> None:
        await self.sink(thought.snapshot())

    async def _open(self, kind: ThoughtKind, stage: str, **fields: Any) -> Thought:
        thought = Thought.open(
            kind,
            self._label(f"{stage}_title"),
            self._label(f"{stage}_placeholder"),
            **fields
        )
        await self._emit(thought)
        return thought

    async def _finish(self, thought: Thought, started: float) -> Thought:
        thought.execution_time_ms = round((time.perf_counter() - started) * 1000, 1)
        await self._emit(thought)
        return thought

    async def _generate(self, thought: Thought, messages: list[dict], stage: str) -> str:
        """
        Run one provider call for a stage.

        In streaming mode every delta replaces ``thought.content`` with the
        accumulated text and is emitted. Provider exceptions propagate.
        """
        budget = self.budget.for_stage(stage)

        if not self.streaming:
            return await self.provider.complete(messages, budget)

        accumulated = ""
        async for delta in self.provider.stream(messages, budget):
            accumulated += delta
            thought.content = accumulated
            await self._emit(thought)
        return accumulated

    # ==========================================================================
    # Observe
    # ==========================================================================

    def _recall(self, message: str) -> list[RetrievedMemory]:
        if self.memory is None:
            return []

        keywords = MemoryStore.extract_keywords(message)
        if not keywords:
            return []

        query = MemoryQuery(keywords=keywords, limit=MEMORY_RECALL_LIMIT)
        return [
            RetrievedMemory(id=memory.id, content=memory.content, relevance=round(score, 3))
            for memory, score in self.memory.retrieve_scored(query)
        ]

    async def observe(self, user_message: str, context: str | dict | None = None) -> Thought:
        """
        Analyze the request from this agent's professional angle.

        Related memories are recalled first; when any exist they are
        emitted as a memory_retrieval Thought and added to the prompt.
        """
        recalled = self._recall(user_message)
        if recalled:
            retrieval = Thought.open(
                ThoughtKind.MEMORY_RETRIEVAL,
                self._label("memory_title"),
                memories_retrieved=recalled
            )
            await self._emit(retrieval)
            retrieval.complete(self._label("memory_found", count=len(recalled)))
            await self._emit(retrieval)

        started = time.perf_counter()
        thought = await self._open(ThoughtKind.OBSERVATION, "observe")
        prompt = prompts.observe_prompt(
            self.language,
            self.profile.label,
            user_message,
            context,
            [m.content for m in recalled]
        )

        try:
            with self.logger.timed("observe"):
                answer = await self._generate(thought, [{"role": "user", "content": prompt}], "observe")
        except Exception as e:
            self.logger.error("Observe failed", e)
            thought.fail(self._label("observe_error"))
            return await self._finish(thought, started)

        thought.complete(answer or thought.content)
        return await self._finish(thought, started)

    # ==========================================================================
    # Think
    # ==========================================================================

    async def think(self, observation: str, user_message: str) -> Thought:
        """
        Reason about the observation and weigh alternatives.

        A structured JSON answer fills ``reasoning_steps`` and
        ``alternatives`` and the content becomes the final recommendation.
        Anything else is kept verbatim as the content.
        """
        started = time.perf_counter()
        thought = await self._open(ThoughtKind.THOUGHT, "think")
        prompt = prompts.think_prompt(self.language, observation, user_message)

        try:
            with self.logger.timed("think"):
                answer = await self._generate(thought, [{"role": "user", "content": prompt}], "think")
        except Exception as e:
            self.logger.error("Think failed", e)
            thought.fail(self._label("think_error"))
            return await self._finish(thought, started)

        decoded = decode_thinking(answer)
        if isinstance(decoded, RawThinking):
            thought.complete(decoded.text or thought.content)
        else:
            thought.reasoning_steps = decoded.reasoning_steps
            thought.alternatives = decoded.alternatives
            thought.complete(decoded.final_recommendation or self._label("think_done"))

        return await self._finish(thought, started)

    # ==========================================================================
    # Act
    # ==========================================================================

    async def _resolve_tool(self, user_message: str) -> str | None:
        """Keyword selection first, then the model's next-action decision."""
        candidates = self.decisions.select_tools(user_message)
        if candidates:
            return candidates[0]

        decision = await self.decisions.decide(DecisionContext(
            user_message=user_message,
            current_goal=self.profile.label
        ))
        if (
            decision.action == DecisionAction.USE_TOOL
            and decision.tool_name
            and self.tools.has(decision.tool_name)
        ):
            return decision.tool_name
        return None

    async def act(self, user_message: str, tool_name: str | None = None) -> Thought:
        """
        Run one tool for the request.

        Args:
            user_message: The raw request; the tool input is synthesized
                from it
            tool_name: Tool to use; when None one is selected

        A tool that reports ``success=False`` still completes the Thought;
        its output carries the failure.
        """
        started = time.perf_counter()
        thought = await self._open(ThoughtKind.ACTION, "act")

        try:
            if tool_name is not None:
                if not self.tools.has(tool_name):
                    self.logger.warning(f"Requested tool is not registered: {tool_name}")
                    thought.tool_name = tool_name
                    thought.fail(self._label("act_unknown_tool", tool=tool_name))
                    return await self._finish(thought, started)
                selected = tool_name
            else:
                selected = await self._resolve_tool(user_message)

            if selected is None:
                thought.complete(self._label("act_no_tool"))
                return await self._finish(thought, started)

            tool = self.tools.get(selected)
            thought.tool_name = selected
            thought.content = self._label("act_found", tool=tool.description)
            await self._emit(thought)

            tool_input = self.decisions.synthesize_tool_input(selected, user_message)
            thought.tool_input = tool_input
            thought.content = self._label("act_running", tool=tool.description)
            await self._emit(thought)

            with self.logger.timed("act", {"tool": selected}):
                result = await self.tools.execute(selected, tool_input)
        except Exception as e:
            self.logger.error("Act failed", e)
            thought.fail(self._label("act_error", error=str(e)))
            return await self._finish(thought, started)

        thought.tool_output = result.to_dict()
        if result.success:
            thought.complete(self._label("act_success", tool=tool.description))
        else:
            thought.complete(self._label("act_tool_failed", tool=tool.description, error=result.error))
        return await self._finish(thought, started)

    # ==========================================================================
    # Reflect
    # ==========================================================================

    async def reflect(self, previous: list[Thought], final_result: str) -> Thought:
        """
        Critique the earlier stages and propose improvements.

        Two calls: the reflection itself (streamed), then a short
        follow-up for 1-2 improvements. A successful reflection is
        remembered as a semantic memory.
        """
        started = time.perf_counter()
        thought = await self._open(ThoughtKind.REFLECTION, "reflect")
        prompt = prompts.reflect_prompt(
            self.language,
            [(t.kind.value, t.content) for t in previous],
            final_result
        )
        messages = [{"role": "user", "content": prompt}]

        try:
            with self.logger.timed("reflect"):
                reflection = await self._generate(thought, messages, "reflect")
                improvement = await self.provider.complete(
                    messages + [
                        {"role": "assistant", "content": reflection},
                        {"role": "user", "content": prompts.improvement_prompt(self.language)},
                    ],
                    self.budget.for_stage("improve")
                )
        except Exception as e:
            self.logger.error("Reflect failed", e)
            thought.fail(self._label("reflect_error"))
            return await self._finish(thought, started)

        thought.reflection = reflection
        thought.improvement = improvement
        thought.complete(reflection)

        if self.memory is not None and reflection:
            self.memory.store(memory_from_thought(
                ThoughtKind.REFLECTION.value,
                thought.title,
                reflection
            ))

        return await self._finish(thought, started)
