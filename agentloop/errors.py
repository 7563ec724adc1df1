"""
Exceptions raised by the agent loop.

Only programmer-error-class faults are raised. Expected failures (a tool
declining its input, a provider timing out, a model answering with broken
JSON) are turned into values: ``ToolResult(success=False)``, an ``error``
Thought, or ``RawThinking``.
"""


class AgentLoopError(Exception):
    """Base class for all agent loop exceptions."""


class InvalidTransitionError(AgentLoopError):
    """A Thought or SubAgent was moved to a state it cannot reach."""


class ToolRegistryError(AgentLoopError):
    """A tool was registered twice or after the registry was sealed."""


class ChannelClosedError(AgentLoopError):
    """An event was sent on a channel that has already been closed."""
