"""
Chat Provider
=============

Thin adapter over an OpenAI-compatible chat-completions endpoint.

The rest of the package never touches the OpenAI client directly. It talks
to ``ChatProvider``, which offers exactly two operations:

    complete(messages, budget) -> str
        One request/response exchange; returns choices[0].message.content.

    stream(messages, budget) -> async iterator of str
        Token streaming; yields each non-empty choices[0].delta.content and
        stops at the first chunk that carries a finish_reason.

Any exception from the underlying client propagates. Callers (the agent
stages, the decision engine) decide how to degrade.
"""

from dataclasses import dataclass
from typing import Any, AsyncIterator

from openai import AsyncOpenAI

from agentloop.utils.config import ModelConfig
from agentloop.utils.logger import Logger

logger = Logger("LLM")


@dataclass(frozen=True)
class StageBudget:
    """Token ceiling and temperature for one provider call."""
    max_tokens: int
    temperature: float


class ChatProvider:
    """
    Request/response and token-stream access to a chat model.

    Example:
        provider = ChatProvider.from_config(config.model)

        text = await provider.complete(
            [{"role": "user", "content": "Say hi"}],
            StageBudget(max_tokens=50, temperature=0.3)
        )

        async for delta in provider.stream(messages, budget):
            print(delta, end="")
    """

    def __init__(self, client: Any, model: str):
        """
        Initialize the provider.

        Args:
            client: An ``AsyncOpenAI`` instance (or anything exposing
                ``chat.completions.create`` with the same contract)
            model: Model name sent with every request
        """
        self.client = client
        self.model = model

    @classmethod
    def from_config(cls, config: ModelConfig) -> "ChatProvider":
        """Build a provider backed by ``AsyncOpenAI``."""
        client = AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)
        logger.info(f"Chat provider ready with model: {config.model}")
        return cls(client, config.model)

    async def complete(self, messages: list[dict], budget: StageBudget) -> str:
        """
        Run one non-streaming completion.

        Returns:
            The message content, or "" when the model returned none
        """
        logger.debug(
            "Completion request",
            {"messages": len(messages), "max_tokens": budget.max_tokens}
        )
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=budget.max_tokens,
            temperature=budget.temperature,
            stream=False
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def stream(
        self,
        messages: list[dict],
        budget: StageBudget
    ) -> AsyncIterator[str]:
        """
        Stream a completion token by token.

        Yields:
            Non-empty content fragments in arrival order
        """
        logger.debug(
            "Streaming request",
            {"messages": len(messages), "max_tokens": budget.max_tokens}
        )
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=budget.max_tokens,
            temperature=budget.temperature,
            stream=True
        )

        async with stream:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta.content if choice.delta else None
                if delta:
                    yield delta
                if choice.finish_reason:
                    break
