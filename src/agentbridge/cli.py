"""Command-line interface for agentbridge."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
from collections.abc import Sequence
from datetime import datetime

from rich.console import Console
from rich.table import Table

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="agentbridge",
        description="Chat UI bridge to Claude and Codex agent backends",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the chat server",
    )
    serve_parser.add_argument("--host", help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default from config)")
    serve_parser.add_argument(
        "--project",
        help="Project whose config layer to load (default: global config only)",
    )

    sessions_parser = subparsers.add_parser(
        "sessions",
        help="List stored conversations for a project",
    )
    sessions_parser.add_argument("project", help="Project directory")

    return parser


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


async def _list_sessions(project: str) -> int:
    from agentbridge.history import HistoryLoader
    from agentbridge.project import Project

    root = Project.from_path(project).root
    summaries = await HistoryLoader().list_sessions(root)
    if not summaries:
        console.print(f"[dim]No stored sessions for {root}[/dim]")
        return 0

    table = Table(title=f"Sessions for {root}")
    table.add_column("Session ID")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Updated")
    for summary in summaries:
        table.add_row(
            summary.session_id,
            summary.title or "-",
            str(summary.message_count),
            _format_time(summary.updated_at),
        )
    console.print(table)
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    from agentbridge.config import load_config
    from agentbridge.logging import setup_logging

    config = load_config(getattr(parsed, "project", None))
    logging_config = config.logging
    if parsed.verbose is not None:
        logging_config = dataclasses.replace(logging_config, verbose=parsed.verbose + 1)
    setup_logging(logging_config)

    if parsed.command == "serve":
        from agentbridge.app import AgentBridgeApp
        from agentbridge.server import serve

        serve(
            parsed.host or config.server.host,
            parsed.port or config.server.port,
            AgentBridgeApp(config),
        )
        return 0
    elif parsed.command == "sessions":
        return asyncio.run(_list_sessions(parsed.project))
    else:
        parser.print_help()
        return 1
