"""
AgentLoop - Main Entry Point
============================

Terminal consumer of the orchestrator's event stream. It:
1. Loads configuration
2. Builds the orchestrator (provider, tools, memory, decisions)
3. Runs one request, or a read-eval loop that keeps conversation history
4. Prints the answer as it streams; Thoughts and sub-agents go to stderr

Run with:
    python -m agentloop.main "3+4*2"

Or after installing:
    agentloop                 # interactive
    agentloop --json "你好"   # one JSON event per line
"""

import argparse
import asyncio
import json
import sys

from agentloop.orchestration import (
    ContentEvent,
    ErrorEvent,
    Orchestrator,
    SubAgentEvent,
    SubAgentUpdateEvent,
    ThoughtEvent,
)
from agentloop.utils.config import get_config
from agentloop.utils.logger import Logger, set_log_level

main_logger = Logger("Main")

EXIT_COMMANDS = {"exit", "quit", "退出"}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="agentloop",
        description="Observe, think, act and reflect on a request, streaming the work as it happens."
    )
    parser.add_argument("message", nargs="?", help="Request to process; omit for interactive mode")
    parser.add_argument("--json", action="store_true", help="Print every event as a JSON line")
    parser.add_argument("--quiet", action="store_true", help="Print only the final answer")
    return parser.parse_args(argv)


def _render(event, as_json: bool, quiet: bool) -> None:
    if as_json:
        print(json.dumps(event.to_dict(), ensure_ascii=False, default=str), flush=True)
        return

    if isinstance(event, ContentEvent):
        print(event.content, end="", flush=True)
        return

    if quiet:
        return

    if isinstance(event, ThoughtEvent):
        thought = event.agent_thought
        # Only finished Thoughts; running snapshots would flood the terminal
        if thought.is_final:
            print(f"[{thought.title}] {thought.status.value}: {thought.content[:200]}", file=sys.stderr)
    elif isinstance(event, SubAgentEvent):
        print(f"[+] {event.sub_agent.name} ({event.sub_agent.role})", file=sys.stderr)
    elif isinstance(event, SubAgentUpdateEvent):
        print(f"    {event.sub_agent_id}: {event.progress}% {event.status.value}", file=sys.stderr)
    elif isinstance(event, ErrorEvent):
        print(f"Error: {event.error}", file=sys.stderr)


async def _process(
    orchestrator: Orchestrator,
    message: str,
    history: list[dict],
    as_json: bool,
    quiet: bool
) -> tuple[str, bool]:
    """Run one request. Returns the answer and whether the run succeeded."""
    answer = ""
    succeeded = False

    async for event in orchestrator.run(message, history=history):
        _render(event, as_json, quiet)
        if isinstance(event, ContentEvent):
            answer += event.content
        elif event.type == "done":
            succeeded = True

    if not as_json:
        print()
    return answer, succeeded


async def main(argv: list[str] | None = None) -> int:
    """
    Main async entry point.

    Returns:
        Process exit code
    """
    args = _parse_args(argv)

    try:
        main_logger.info("Loading configuration...")
        config = get_config()
        set_log_level(config.log_level)

        main_logger.info("Creating orchestrator...")
        orchestrator = Orchestrator.from_config(config)
    except ValueError as e:
        main_logger.error("Failed to start", e)
        return 1

    if args.message:
        _, succeeded = await _process(orchestrator, args.message, [], args.json, args.quiet)
        return 0 if succeeded else 1

    main_logger.info("Interactive mode. Type 'exit' to quit.")
    history: list[dict] = []

    while True:
        try:
            message = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break

        if not message:
            continue
        if message.lower() in EXIT_COMMANDS:
            break

        answer, succeeded = await _process(orchestrator, message, history, args.json, args.quiet)
        if succeeded:
            history.append({"role": "user", "content": message})
            history.append({"role": "assistant", "content": answer})

    return 0


def run():
    """
    Synchronous entry point.

    This is called when running with the `agentloop` command.
    """
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
