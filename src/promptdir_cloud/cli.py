"""Prompt Directory Cloud CLI.

Usage::

    promptdir-cloud serve --port 8000
    promptdir-cloud init-db
    promptdir-cloud usage 5f0c...-user-id --limit 10
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timezone

from promptdir_cloud.config import settings


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    """Print a simple formatted table to stdout."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)

    print(header_line)
    print(separator)
    for row in rows:
        print(" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)))


async def _usage_report(user_id: str, limit: int, session_factory=None) -> None:
    from promptdir_cloud.quota import QuotaGate, UsageLedger, next_reset

    if session_factory is None:
        from promptdir_cloud.database import async_session_factory

        session_factory = async_session_factory

    ledger = UsageLedger(session_factory)
    gate = QuotaGate(session_factory, ledger, settings.daily_generation_limit)
    now = datetime.now(timezone.utc)

    used = await gate.current_usage(user_id, now)
    remaining = max(gate.daily_limit - used, 0)
    print(f"\nUser {user_id}")
    print(f"  used today: {used}/{gate.daily_limit}  remaining: {remaining}")
    print(f"  resets at:  {next_reset(now).isoformat()}\n")

    records = await ledger.history(user_id, limit=limit)
    if not records:
        print("No generations recorded.")
        return

    _print_table(
        ["generated_at", "prompt_type", "tool", "language", "framework", "tokens"],
        [
            [
                r.generated_at.isoformat(),
                r.prompt_type,
                r.tool,
                r.language or "-",
                r.framework or "-",
                str(r.tokens_used),
            ]
            for r in records
        ],
    )


def cmd_usage(args: argparse.Namespace) -> None:
    """Execute the ``usage`` command."""
    asyncio.run(_usage_report(args.user_id, args.limit))


def cmd_init_db(args: argparse.Namespace) -> None:
    """Execute the ``init-db`` command."""
    from promptdir_cloud.database import dispose_engine, init_db

    async def _run() -> None:
        await init_db()
        await dispose_engine()

    asyncio.run(_run())
    print("Tables created.")


def cmd_serve(args: argparse.Namespace) -> None:
    """Execute the ``serve`` command."""
    import uvicorn

    uvicorn.run(
        "promptdir_cloud.main:app",
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="promptdir-cloud",
        description="Prompt Directory Cloud: AI prompt generator backend",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    subparsers.add_parser("init-db", help="Create database tables (dev only)")

    usage_parser = subparsers.add_parser(
        "usage",
        help="Show today's generator usage and recent history for a user",
    )
    usage_parser.add_argument("user_id", help="User id as issued by the auth provider")
    usage_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of ledger rows to show (default: 20)",
    )

    parsed = parser.parse_args(argv)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "serve":
        cmd_serve(parsed)
    elif parsed.command == "init-db":
        cmd_init_db(parsed)
    elif parsed.command == "usage":
        cmd_usage(parsed)


if __name__ == "__main__":
    main()
