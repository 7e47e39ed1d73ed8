"""Cloud Function entry point for the link resolution service."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import queue
import sys
import threading
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Iterator, List, Optional

import flask

# Ensure project root is on sys.path before importing project modules
project_root = Path(__file__).parent.parent.parent.parent.parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.shared.utils.env import load_env
from src.shared.utils.logging import setup_logging

from src.functions.link_resolution.core.contracts import ProgressEvent
from src.functions.link_resolution.core.factory import (
    links_from_payload,
    parse_limit,
    source_url_from_payload,
)
from src.functions.link_resolution.core.service import LinkResolutionService

load_env()
setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STREAM_END = object()

_service: Optional[LinkResolutionService] = None


def get_service() -> LinkResolutionService:
    """Return the process-wide service, built from the environment on first use."""
    global _service
    if _service is None:
        _service = LinkResolutionService()
    return _service


def set_service(service: Optional[LinkResolutionService]) -> None:
    """Replace the process-wide service (local tooling and tests)."""
    global _service
    _service = service


def tasks_handler(request: flask.Request) -> flask.Response:
    """List recent tasks (GET) or trigger a persisted resolution run (POST)."""

    if request.method == "OPTIONS":
        return _cors_response({}, status=204)

    if request.method == "GET":
        return _list_tasks(request)

    if request.method != "POST":
        logger.warning("Unsupported HTTP method: %s", request.method)
        return _error_response("Method not allowed. Use GET or POST.", status=405)

    try:
        payload = request.get_json(silent=True) or {}
        source_url = source_url_from_payload(payload)
        service = get_service()
        task, links = _run_async(service.create_task(source_url))
    except ValueError as exc:
        logger.warning("Invalid task request: %s", exc)
        return _error_response(str(exc), status=400)
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to create task", exc_info=True)
        return _error_response(f"Internal error: {exc}", status=500)

    if links:
        _start_background(lambda: service.resolve_task(task.id, links), name=f"resolve-{task.id}")
        logger.info("Task %s accepted with %d link(s)", task.id, len(links))

    return _cors_response({"task_id": task.id, "metadata": task.metadata})


def stream_solve_handler(request: flask.Request) -> flask.Response:
    """Resolve the posted links and stream NDJSON progress events."""

    if request.method == "OPTIONS":
        return _cors_response({}, status=204)

    if request.method != "POST":
        logger.warning("Unsupported HTTP method: %s", request.method)
        return _error_response("Method not allowed. Use POST.", status=405)

    try:
        links = links_from_payload(request.get_json(silent=True))
    except ValueError as exc:
        logger.warning("Invalid stream request: %s", exc)
        return _error_response(str(exc), status=400)

    service = get_service()
    logger.info("Streaming resolution of %d link(s)", len(links))
    response = flask.Response(
        _ndjson_lines(lambda: service.stream(links)),
        status=200,
        mimetype="application/x-ndjson",
    )
    headers = response.headers
    headers["Cache-Control"] = "no-cache"
    headers["X-Accel-Buffering"] = "no"
    headers["Access-Control-Allow-Origin"] = "*"
    return response


def health_check_handler(request: flask.Request) -> flask.Response:
    """Health check endpoint."""
    return _cors_response({"status": "healthy", "service": "link_resolution"})


def _list_tasks(request: flask.Request) -> flask.Response:
    try:
        limit = parse_limit(request.args.get("limit"))
    except ValueError as exc:
        return _error_response(str(exc), status=400)

    try:
        tasks = _run_async(get_service().list_tasks(limit))
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to list tasks", exc_info=True)
        return _error_response(f"Internal error: {exc}", status=500)
    return _cors_response([task.to_dict() for task in tasks])


def _ndjson_lines(stream_factory: Callable[[], AsyncIterator[ProgressEvent]]) -> Iterator[str]:
    """Drive an async event stream on a worker thread and yield NDJSON lines."""

    lines: "queue.Queue[object]" = queue.Queue()

    async def _pump() -> None:
        try:
            async for event in stream_factory():
                lines.put(json.dumps(event.to_dict(), ensure_ascii=False) + "\n")
        except Exception:  # noqa: BLE001 - the HTTP status is already sent
            logger.exception("Streaming resolution aborted")
        finally:
            lines.put(_STREAM_END)

    threading.Thread(target=asyncio.run, args=(_pump(),), name="stream-solve", daemon=True).start()

    while True:
        line = lines.get()
        if line is _STREAM_END:
            break
        yield line


def _start_background(coro_factory: Callable[[], Any], *, name: str) -> threading.Thread:
    def _runner() -> None:
        try:
            asyncio.run(coro_factory())
        except Exception:  # noqa: BLE001
            logger.exception("Background task %s crashed", name)

    thread = threading.Thread(target=_runner, name=name, daemon=True)
    thread.start()
    return thread


def _cors_response(body: dict[str, Any] | List[Any], status: int = 200) -> flask.Response:
    """Create a CORS-enabled JSON response."""
    response = flask.make_response(json.dumps(body, ensure_ascii=False), status)
    headers = response.headers
    headers["Content-Type"] = "application/json"
    headers["Access-Control-Allow-Origin"] = "*"
    headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
    headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


def _error_response(message: str, status: int) -> flask.Response:
    """Create an error response with CORS headers."""
    return _cors_response({"status": "error", "message": message}, status=status)


def _run_async(coro):
    """Run an async coroutine in a new or existing event loop."""
    try:
        return asyncio.run(coro)
    except RuntimeError as exc:
        if "event loop" in str(exc).lower():
            loop = asyncio.new_event_loop()
            try:
                asyncio.set_event_loop(loop)
                return loop.run_until_complete(coro)
            finally:
                loop.close()
        raise


# Optional functions-framework registration for local tooling parity
try:  # pragma: no cover - optional dependency
    import functions_framework
except ImportError:  # pragma: no cover
    functions_framework = None

if functions_framework is not None:

    @functions_framework.http
    def tasks(request: flask.Request):
        """Entry point for functions-framework: task listing and trigger."""
        return tasks_handler(request)

    @functions_framework.http
    def stream_solve(request: flask.Request):
        """Entry point for functions-framework: streaming resolution."""
        return stream_solve_handler(request)

    @functions_framework.http
    def health_check(request: flask.Request):
        """Health check entry point."""
        return health_check_handler(request)
