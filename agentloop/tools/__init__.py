"""
Tools System
============

Named, side-effecting capabilities the agents can invoke.

Every tool follows one contract:
- It has a name, a description, a JSON-schema for its input and a category
- ``execute(input)`` is async and always resolves to a ``ToolResult``
- Expected failures (bad input, missing configuration, a safety violation)
  come back as ``ToolResult(success=False, error=...)``, never as exceptions

Built-in tools:
1. code_execution: sandboxed arithmetic/code evaluation behind a deny-list
2. web_search: Serper-compatible web search over httpx
3. file_operation: read/write/list under an allow-list of directories
4. data_analysis: numeric statistics and trends with numpy
5. code_analysis: heuristic static review of a code snippet

How Tools Are Used:
1. The decision engine picks a tool for the request
2. The agent's Act stage synthesizes the tool input
3. The registry executes the tool
4. The result is recorded on the action Thought and fed to the final answer

This module provides:
- Tool dataclass for defining tools
- ToolResult for standardized responses
- ToolRegistry for managing available tools
- build_default_registry() wiring the built-in tools to their config
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Awaitable, TYPE_CHECKING

from agentloop.errors import ToolRegistryError
from agentloop.utils.logger import Logger

if TYPE_CHECKING:
    from agentloop.utils.config import FileConfig, SearchConfig

logger = Logger("Tools")


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: The result data (a dict, flattened into to_dict())
        error: Error message if success is False
        violations: Safety-gate matches that blocked execution
    """
    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    violations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """
        Flatten to the tool-output map recorded on Thoughts.

        Example:
            ToolResult(success=True, data={"result": "14"}).to_dict()
            # {"success": True, "result": "14"}
        """
        result: dict[str, Any] = {"success": self.success}
        result.update(self.data)
        if self.error is not None:
            result["error"] = self.error
        if self.violations:
            result["violations"] = list(self.violations)
        return result


@dataclass
class Tool:
    """
    Definition of a tool.

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does
        parameters: JSON Schema for the input map
        execute: Async function that runs the tool
        category: Coarse grouping (computation, information, filesystem...)

    Example:
        async def _echo(params: dict) -> ToolResult:
            return ToolResult(success=True, data={"echo": params.get("text", "")})

        tool = Tool(
            name="echo",
            description="Return the input text",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"]
            },
            execute=_echo
        )
    """
    name: str
    description: str
    parameters: dict
    execute: Callable[[dict], Awaitable[ToolResult]]
    category: str = "general"


class ToolRegistry:
    """
    Registry of the tools available to a process.

    Tools are registered once at startup; ``seal()`` then freezes the
    registry so it is read-only for the rest of its lifetime.

    Example:
        registry = ToolRegistry()
        registry.register(my_tool)
        registry.seal()

        result = await registry.execute("my_tool", {"text": "hi"})
    """

    def __init__(self):
        """Initialize an empty, unsealed registry."""
        self._tools: dict[str, Tool] = {}
        self._sealed = False

    def register(self, tool: Tool) -> None:
        """
        Register a tool.

        Raises:
            ToolRegistryError: If the name is taken or the registry is sealed
        """
        if self._sealed:
            raise ToolRegistryError(
                f"Cannot register '{tool.name}': registry is sealed"
            )
        if tool.name in self._tools:
            raise ToolRegistryError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def seal(self) -> None:
        """Make the registry read-only."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, name: str) -> Tool | None:
        """Get a tool by name, or None."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_all(self) -> list[Tool]:
        """Get all registered tools."""
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        """Get list of all tool names, in registration order."""
        return list(self._tools.keys())

    async def execute(self, name: str, params: dict) -> ToolResult:
        """
        Execute a tool by name.

        Never raises for an unknown name or a failing tool; both come back
        as ``success=False``.
        """
        tool = self.get(name)
        if not tool:
            return ToolResult(success=False, error=f"Tool '{name}' not found")

        try:
            logger.info(f"Executing tool: {name}")
            with logger.timed(f"tool {name}"):
                return await tool.execute(params)
        except Exception as e:
            logger.error(f"Tool execution failed: {name}", e)
            return ToolResult(success=False, error=str(e))


def build_default_registry(
    search_config: "SearchConfig | None" = None,
    file_config: "FileConfig | None" = None,
    seal: bool = True
) -> ToolRegistry:
    """
    Create a registry holding the built-in tools.

    Args:
        search_config: Credentials and endpoint for web_search
        file_config: Allow-listed roots for file_operation
        seal: Seal the registry before returning it

    Returns:
        The populated registry
    """
    # Imported here so the tool modules can import ToolResult from this package
    from agentloop.tools.code_tools import create_code_analysis_tool, create_code_execution_tool
    from agentloop.tools.data_tools import create_data_analysis_tool
    from agentloop.tools.file_tools import create_file_operation_tool
    from agentloop.tools.search_tools import create_web_search_tool
    from agentloop.utils.config import FileConfig, SearchConfig

    registry = ToolRegistry()
    registry.register(create_code_execution_tool())
    registry.register(create_web_search_tool(search_config or SearchConfig()))
    registry.register(create_file_operation_tool(file_config or FileConfig()))
    registry.register(create_data_analysis_tool())
    registry.register(create_code_analysis_tool())

    if seal:
        registry.seal()

    logger.info(f"Registered {len(registry.list_names())} tools")
    return registry


__all__ = [
    "Tool",
    "ToolResult",
    "ToolRegistry",
    "build_default_registry",
]
