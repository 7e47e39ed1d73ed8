"""Command-line tool for exercising the link resolution pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[4]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.shared.utils.env import load_env
from src.shared.utils.logging import get_logger, setup_logging

from src.functions.link_resolution.core.config import ResolverConfig
from src.functions.link_resolution.core.contracts import Link, LinkStatus, ProgressEvent
from src.functions.link_resolution.core.db import DEFAULT_LIST_LIMIT
from src.functions.link_resolution.core.service import LinkResolutionService
from src.functions.link_resolution.core.sinks import AccumulatingProgressSink, CompositeProgressSink

LOGGER = get_logger(__name__)


class _PrintSink:
    """Writes each event to stdout as one NDJSON line."""

    async def emit(self, event: ProgressEvent) -> None:
        print(json.dumps(event.to_dict(), ensure_ascii=False), flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve download pages into direct links.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Optional .env file to load before running.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for the CLI (default: WARNING, keeps stdout clean).",
    )
    parser.add_argument(
        "--max-concurrent-per-provider",
        type=int,
        help="Cap simultaneous calls to each resolver provider.",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        help="Per-call deadline for resolver requests.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    stream = subparsers.add_parser("stream", help="Resolve links and print NDJSON progress events.")
    stream.add_argument("urls", nargs="+", help="Links to resolve.")
    stream.add_argument(
        "--summary",
        action="store_true",
        help="Print a per-link summary to stderr when finished.",
    )

    task = subparsers.add_parser("task", help="Extract a source page and run a persisted task in the foreground.")
    task.add_argument("source_url", help="Page to extract candidate links from.")

    listing = subparsers.add_parser("list", help="Show the most recent persisted tasks.")
    listing.add_argument("--limit", type=int, default=DEFAULT_LIST_LIMIT, help="Number of tasks to show.")

    return parser


def _build_config(args: argparse.Namespace) -> ResolverConfig:
    config = ResolverConfig.from_env()
    overrides = {}
    if args.max_concurrent_per_provider is not None:
        overrides["max_concurrent_per_provider"] = args.max_concurrent_per_provider
    if args.timeout_seconds is not None:
        overrides["request_timeout_seconds"] = args.timeout_seconds
    if not overrides:
        return config
    return replace(config, **overrides)


async def _stream(service: LinkResolutionService, urls: List[str], summary: bool) -> int:
    links = [Link(id=str(index), url=url) for index, url in enumerate(urls, start=1)]
    collected = AccumulatingProgressSink()
    await service.resolve_links(links, CompositeProgressSink(_PrintSink(), collected))

    if summary:
        for link in links:
            outcome = link.final_url if link.status is LinkStatus.DONE else link.error_message
            events = len(collected.events_for(link.id))
            print(f"[{link.id}] {link.status.value} ({events} events): {outcome}", file=sys.stderr)

    return 0 if all(link.status is LinkStatus.DONE for link in links) else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_env(str(args.env_file))
    else:
        load_env()
    setup_logging(level=args.log_level)

    try:
        service = LinkResolutionService(_build_config(args))
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    if args.command == "stream":
        return asyncio.run(_stream(service, args.urls, args.summary))

    if args.command == "task":
        task = asyncio.run(service.run_task(args.source_url))
        print(json.dumps(task.to_dict(), indent=2, ensure_ascii=False))
        return 0 if task.status.value == "completed" else 1

    tasks = asyncio.run(service.list_tasks(args.limit))
    print(json.dumps([task.to_dict() for task in tasks], indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
