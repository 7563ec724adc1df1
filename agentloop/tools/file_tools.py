"""
File Operation Tool
===================

Read, write and list files, restricted to an allow-list of root
directories (FILE_ALLOWED_ROOTS, default ``/tmp`` and ``/workspace``).

Paths must be absolute. They are resolved (symlinks and ``..`` collapsed)
before the allow-list check, so ``/tmp/../etc/passwd`` is rejected.
"""

from pathlib import Path

from agentloop.tools import Tool, ToolResult
from agentloop.utils.config import FileConfig
from agentloop.utils.logger import Logger

logger = Logger("FileTools")

OPERATIONS = ("read", "write", "list")

# Reads larger than this are truncated
MAX_READ_BYTES = 1024 * 1024


def resolve_allowed_path(raw_path: str, allowed_roots: tuple[Path, ...]) -> Path | None:
    """
    Resolve a path and check it against the allow-list.

    Returns:
        The resolved path, or None when it falls outside every root
    """
    path = Path(raw_path)
    if not path.is_absolute():
        return None

    resolved = path.resolve()
    for root in allowed_roots:
        root_resolved = root.resolve()
        if resolved == root_resolved or resolved.is_relative_to(root_resolved):
            return resolved
    return None


def _read(path: Path) -> ToolResult:
    if not path.is_file():
        return ToolResult(success=False, error=f"File not found: {path}",
                          data={"operation": "read", "path": str(path)})

    size = path.stat().st_size
    with path.open("rb") as f:
        raw = f.read(MAX_READ_BYTES)

    return ToolResult(success=True, data={
        "operation": "read",
        "path": str(path),
        "content": raw.decode("utf-8", errors="replace"),
        "size": size,
        "truncated": size > MAX_READ_BYTES
    })


def _write(path: Path, content: str) -> ToolResult:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return ToolResult(success=True, data={
        "operation": "write",
        "path": str(path),
        "content_length": len(content)
    })


def _list(path: Path) -> ToolResult:
    if not path.is_dir():
        return ToolResult(success=False, error=f"Directory not found: {path}",
                          data={"operation": "list", "path": str(path)})

    files = sorted(
        entry.name + "/" if entry.is_dir() else entry.name
        for entry in path.iterdir()
    )
    return ToolResult(success=True, data={
        "operation": "list",
        "path": str(path),
        "files": files,
        "count": len(files)
    })


def create_file_operation_tool(config: FileConfig) -> Tool:
    """
    Create the file_operation tool bound to an allow-list.

    Args:
        config: Directories the tool may touch
    """

    async def _file_operation(params: dict) -> ToolResult:
        operation = str(params.get("operation") or "").lower()
        raw_path = str(params.get("path") or "")

        if operation not in OPERATIONS:
            return ToolResult(
                success=False,
                error=f"Unsupported operation: {operation or '(none)'}",
                data={"operation": operation}
            )

        path = resolve_allowed_path(raw_path, config.allowed_roots) if raw_path else None
        if path is None:
            logger.warning(f"Rejected path outside allow-list: {raw_path!r}")
            return ToolResult(
                success=False,
                error="Access to this path is not allowed",
                data={"operation": operation, "path": raw_path}
            )

        try:
            if operation == "read":
                return _read(path)
            if operation == "write":
                return _write(path, str(params.get("content") or ""))
            return _list(path)
        except OSError as e:
            logger.error(f"File {operation} failed for {path}", e)
            return ToolResult(
                success=False,
                error=f"File operation failed: {e}",
                data={"operation": operation, "path": str(path)}
            )

    return Tool(
        name="file_operation",
        description="Read, write or list files inside the allowed directories",
        parameters={
            "type": "object",
            "properties": {
                "operation": {"type": "string", "enum": list(OPERATIONS)},
                "path": {"type": "string", "description": "Absolute path"},
                "content": {"type": "string", "description": "Text to write"}
            },
            "required": ["operation", "path"]
        },
        execute=_file_operation,
        category="filesystem"
    )
