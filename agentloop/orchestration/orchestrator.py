"""
Orchestrator
============

Runs one request end to end and streams what happens.

Run Flow:
    User Message
         │
         ▼
    Classify (DecisionEngine.analyze) ──► decision Thought
         │
         ├── no thinking, no tools ─────────────────────┐
         │                                              │
         ├── complex ──► multi-agent                    │
         │               analyst, technical, manager    │
         │               one after another              │
         │                                              │
         └── otherwise ──► single agent (analyst)       │
                           observe → think →            │
                           act (if tools) → reflect     │
                                                        ▼
                                             Final answer (streamed)
                                                        │
                                                        ▼
                                             Remember the exchange

``run()`` is an async iterator. Work happens in a producer task that
writes to a bounded ``EventChannel``; the iterator reads from it. If the
consumer stops iterating, the producer is cancelled.
"""

import asyncio
import contextlib
import json
import uuid
from typing import AsyncIterator

from agentloop.agent import (
    Agent,
    AgentAnalysis,
    AnswerContextAssembler,
    RoleProfile,
    SubAgent,
    SubAgentStatus,
    Thought,
    ThoughtKind,
    ThoughtStatus,
    collect_tool_calls,
    default_roster,
    get_profile,
)
from agentloop.agent import prompts
from agentloop.agent.tools_executor import ToolCallRecord
from agentloop.decision import Complexity, DecisionEngine, TaskClassification
from agentloop.llm import ChatProvider, TokenBudget
from agentloop.memory import MemoryStore, memory_from_conversation
from agentloop.orchestration.channel import EventChannel
from agentloop.orchestration.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    Event,
    SubAgentEvent,
    SubAgentUpdateEvent,
    ThoughtEvent,
)
from agentloop.tools import ToolRegistry, build_default_registry
from agentloop.utils.config import Config, ModelConfig
from agentloop.utils.logger import Logger

logger = Logger("Orchestrator")

# Verbs that mark a request as analysis-heavy regardless of length
COMPLEX_MARKERS = ("analyze", "analyse", "compare", "分析", "比较")

# Multi-agent progress milestones
PROGRESS_STARTED = 20
PROGRESS_OBSERVED = 40
PROGRESS_THOUGHT = 70
PROGRESS_ACTED = 90
PROGRESS_DONE = 100


class Orchestrator:
    """
    Drives a request through classification, agents and the final answer.

    Example:
        orchestrator = Orchestrator.from_config(get_config())

        async for event in orchestrator.run("3+4*2"):
            if isinstance(event, ContentEvent):
                print(event.content, end="")
    """

    def __init__(
        self,
        provider: ChatProvider,
        decision_engine: DecisionEngine,
        tools: ToolRegistry,
        memory: MemoryStore | None,
        model_config: ModelConfig,
        language: str = "zh",
        streaming: bool = True,
        multi_agent_min_length: int = 100,
        run_timeout: float | None = None,
        channel_capacity: int = 64
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Chat model used by agents and the final answer
            decision_engine: Classification and tool decisions
            tools: Tools available to the Act stage
            memory: Shared agent memory; None disables recall and storage
            model_config: Sizes the per-stage token budgets
            language: "zh" or "en"
            streaming: Stream model answers, or one request per call
            multi_agent_min_length: Longer messages go multi-agent
            run_timeout: Seconds before a run is abandoned; None or 0
                disables the deadline
            channel_capacity: Events buffered before the producer waits
        """
        self.provider = provider
        self.decisions = decision_engine
        self.tools = tools
        self.memory = memory
        self.budget = TokenBudget(model_config)
        self.language = language
        self.streaming = streaming
        self.multi_agent_min_length = multi_agent_min_length
        self.run_timeout = run_timeout or None
        self.channel_capacity = channel_capacity
        self.assembler = AnswerContextAssembler(language)

    @classmethod
    def from_config(cls, config: Config) -> "Orchestrator":
        """Wire up provider, tools, memory and decisions from configuration."""
        provider = ChatProvider.from_config(config.model)
        tools = build_default_registry(config.search, config.files)
        budget = TokenBudget(config.model)
        decisions = DecisionEngine(provider, tools, budget, config.agent.language)

        return cls(
            provider=provider,
            decision_engine=decisions,
            tools=tools,
            memory=MemoryStore.from_config(config.memory),
            model_config=config.model,
            language=config.agent.language,
            streaming=config.agent.streaming,
            multi_agent_min_length=config.agent.multi_agent_min_length,
            run_timeout=config.agent.run_timeout_seconds
        )

    def _label(self, key: str, **values) -> str:
        return prompts.label(self.language, key, **values)

    # ==========================================================================
    # Public API
    # ==========================================================================

    async def run(
        self,
        message: str,
        history: list[dict] | None = None,
        context: str | dict | None = None
    ) -> AsyncIterator[Event]:
        """
        Process one request, yielding events as they happen.

        The last event is always DoneEvent or ErrorEvent.

        Args:
            message: The user's request
            history: Earlier conversation turns in OpenAI format
            context: Extra context for classification and observation
        """
        channel: EventChannel[Event] = EventChannel(self.channel_capacity)
        producer = asyncio.create_task(self._produce(message, history or [], context, channel))

        try:
            async for event in channel:
                yield event
            await producer
        finally:
            if not producer.done():
                logger.debug("Run abandoned by consumer, cancelling")
                producer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await producer

    async def _produce(
        self,
        message: str,
        history: list[dict],
        context: str | dict | None,
        channel: EventChannel[Event]
    ) -> None:
        try:
            if self.run_timeout:
                await asyncio.wait_for(self._execute(message, history, context, channel), self.run_timeout)
            else:
                await self._execute(message, history, context, channel)
        except asyncio.TimeoutError:
            logger.warning(f"Run timed out after {self.run_timeout}s")
            await channel.send(ErrorEvent(self._label("timeout", seconds=self.run_timeout)))
        except Exception as e:
            logger.error("Run failed", e)
            await channel.send(ErrorEvent(str(e) or type(e).__name__))
        finally:
            await channel.close()

    # ==========================================================================
    # Run
    # ==========================================================================

    async def _execute(
        self,
        message: str,
        history: list[dict],
        context: str | dict | None,
        channel: EventChannel[Event]
    ) -> None:
        logger.info(f"Processing request ({len(message)} chars)")

        if isinstance(context, dict):
            context = json.dumps(context, ensure_ascii=False)
        classification = await self.decisions.analyze(message, context)
        await self._emit_decision(classification, channel)

        tool_calls: list[ToolCallRecord] = []
        analyses: list[AgentAnalysis] = []
        multi_agent = False

        if classification.is_direct_answer:
            logger.debug("Direct answer, no agent stages")
        elif self.is_complex(message, classification):
            multi_agent = True
            tool_calls, analyses = await self._run_multi_agent(message, context, classification, channel)
        else:
            tool_calls, analyses = await self._run_single_agent(message, context, classification, channel)

        answer = await self._final_answer(message, history, tool_calls, analyses, multi_agent, channel)

        if self.memory is not None:
            self.memory.store(memory_from_conversation(message, answer, language=self.language))

        await channel.send(DoneEvent())

    def is_complex(self, message: str, classification: TaskClassification) -> bool:
        """Whether a request should go to the multi-agent roster."""
        if classification.estimated_complexity == Complexity.HIGH:
            return True
        if len(message) > self.multi_agent_min_length:
            return True
        lowered = message.lower()
        return any(marker in lowered for marker in COMPLEX_MARKERS)

    def _agent(self, profile: RoleProfile, channel: EventChannel[Event]) -> Agent:
        async def send_thought(thought: Thought) -> None:
            await channel.send(ThoughtEvent(thought))

        return Agent(
            profile,
            self.provider,
            self.tools,
            self.decisions,
            self.budget,
            memory=self.memory,
            language=self.language,
            streaming=self.streaming,
            sink=send_thought
        )

    async def _emit_decision(self, classification: TaskClassification, channel: EventChannel[Event]) -> None:
        tools = ", ".join(classification.tools_required) or "-"
        if self.language.startswith("zh"):
            summary = (
                f"思考策略：{classification.thinking_strategy.value}，所需工具：{tools}，"
                f"复杂度：{classification.estimated_complexity.value}，"
                f"置信度：{classification.confidence:.2f}。{classification.reasoning}"
            )
        else:
            summary = (
                f"Strategy: {classification.thinking_strategy.value}, tools: {tools}, "
                f"complexity: {classification.estimated_complexity.value}, "
                f"confidence: {classification.confidence:.2f}. {classification.reasoning}"
            )

        thought = Thought.open(
            ThoughtKind.DECISION,
            self._label("decision_title"),
            shared_context=classification.to_dict()
        )
        await channel.send(ThoughtEvent(thought.snapshot()))
        thought.complete(summary)
        await channel.send(ThoughtEvent(thought.snapshot()))

    # ==========================================================================
    # Single agent
    # ==========================================================================

    async def _run_single_agent(
        self,
        message: str,
        context: str | dict | None,
        classification: TaskClassification,
        channel: EventChannel[Event]
    ) -> tuple[list[ToolCallRecord], list[AgentAnalysis]]:
        agent = self._agent(get_profile("analyst", self.language), channel)

        observation = await agent.observe(message, context)
        thinking = await agent.think(observation.content, message)
        thoughts = [observation, thinking]

        if classification.tools_required:
            thoughts.append(await agent.act(message, classification.tools_required[0]))

        await agent.reflect(thoughts, thinking.content)

        analysis = thinking if thinking.status == ThoughtStatus.COMPLETED else observation
        analyses = []
        if analysis.status == ThoughtStatus.COMPLETED:
            analyses.append(AgentAnalysis(agent.name, analysis.content))

        return collect_tool_calls(thoughts, agent.name), analyses

    # ==========================================================================
    # Multi agent
    # ==========================================================================

    async def _run_multi_agent(
        self,
        message: str,
        context: str | dict | None,
        classification: TaskClassification,
        channel: EventChannel[Event]
    ) -> tuple[list[ToolCallRecord], list[AgentAnalysis]]:
        roster = default_roster(self.language)
        names = [profile.name for profile in roster]

        collaboration = Thought.open(
            ThoughtKind.COLLABORATION,
            self._label("collab_title"),
            self._label("collab_start", names=", ".join(names)),
            collaborator=names
        )
        await channel.send(ThoughtEvent(collaboration.snapshot()))

        tool_calls: list[ToolCallRecord] = []
        analyses: list[AgentAnalysis] = []

        for index, profile in enumerate(roster):
            agent = self._agent(profile, channel)
            sub_agent = SubAgent(
                id=f"agent-{profile.key}-{uuid.uuid4().hex[:8]}",
                name=profile.name,
                role=profile.label,
                expertise=list(profile.expertise),
                current_task=message[:100]
            )

            sub_agent.advance(PROGRESS_STARTED, SubAgentStatus.THINKING)
            await channel.send(SubAgentEvent(sub_agent.snapshot()))

            observation = await agent.observe(message, context)
            await self._progress(sub_agent, PROGRESS_OBSERVED, SubAgentStatus.WORKING, channel)

            thinking = await agent.think(observation.content, message)
            await self._progress(sub_agent, PROGRESS_THOUGHT, SubAgentStatus.WORKING, channel)

            if index == 0 and classification.tools_required:
                action = await agent.act(message, classification.tools_required[0])
                tool_calls.extend(collect_tool_calls([action], agent.name))
            await self._progress(sub_agent, PROGRESS_ACTED, SubAgentStatus.WORKING, channel)

            reflection = await agent.reflect([observation, thinking], thinking.content)
            deliverable = reflection.content if reflection.status == ThoughtStatus.COMPLETED else thinking.content
            sub_agent.deliverable = deliverable
            await self._progress(sub_agent, PROGRESS_DONE, SubAgentStatus.COMPLETED, channel)

            analyses.append(AgentAnalysis(agent.name, deliverable))

        collaboration.collaborator = names
        collaboration.complete(self._label("collab_done", count=len(roster)))
        await channel.send(ThoughtEvent(collaboration.snapshot()))

        return tool_calls, analyses

    async def _progress(
        self,
        sub_agent: SubAgent,
        progress: int,
        status: SubAgentStatus,
        channel: EventChannel[Event]
    ) -> None:
        sub_agent.advance(progress, status)
        await channel.send(SubAgentUpdateEvent(
            sub_agent.id,
            sub_agent.progress,
            sub_agent.status,
            sub_agent.deliverable
        ))

    # ==========================================================================
    # Final answer
    # ==========================================================================

    async def _final_answer(
        self,
        message: str,
        history: list[dict],
        tool_calls: list[ToolCallRecord],
        analyses: list[AgentAnalysis],
        multi_agent: bool,
        channel: EventChannel[Event]
    ) -> str:
        assembled = self.assembler.assemble(message, history, tool_calls, analyses, multi_agent)
        messages = assembled.to_openai_messages()
        budget = self.budget.answer_budget(assembled.input_text())

        with logger.timed("final answer", {"max_tokens": budget.max_tokens}):
            if not self.streaming:
                answer = await self.provider.complete(messages, budget)
                if answer:
                    await channel.send(ContentEvent(answer))
                return answer

            answer = ""
            async for delta in self.provider.stream(messages, budget):
                answer += delta
                await channel.send(ContentEvent(delta))
            return answer
