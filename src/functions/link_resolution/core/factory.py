"""Request factory that parses incoming payloads into pipeline inputs."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from src.shared.utils.logging import get_logger

from .contracts import Link, StreamSolveRequest, TaskCreateRequest
from .db import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT

LOGGER = get_logger(__name__)


def links_from_payload(payload: Any) -> List[Link]:
    """Build ``Link`` objects from a ``{"links": [{"id", "link"}]}`` body."""

    if not isinstance(payload, Mapping):
        raise ValueError("Payload must be a JSON object")
    try:
        request = StreamSolveRequest(**payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid request format: {_summarise(exc)}") from exc

    seen = set()
    links: List[Link] = []
    for entry in request.links:
        if entry.id in seen:
            raise ValueError(f"Duplicate link id: {entry.id}")
        seen.add(entry.id)
        links.append(Link(id=entry.id, url=entry.link, name=entry.name))

    LOGGER.debug("Parsed %d link(s) from stream request", len(links))
    return links


def source_url_from_payload(payload: Any) -> str:
    """Return the source page URL of a task trigger body."""

    if not isinstance(payload, Mapping) or not payload.get("url"):
        raise ValueError("URL is required")
    try:
        return TaskCreateRequest(**payload).url
    except ValidationError as exc:
        raise ValueError(_summarise(exc)) from exc


def parse_limit(value: Optional[str]) -> int:
    """Parse the ``limit`` query parameter of the task listing."""

    if value is None or not str(value).strip():
        return DEFAULT_LIST_LIMIT
    try:
        limit = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("limit must be an integer") from exc
    if limit < 1:
        raise ValueError("limit must be positive")
    return min(limit, MAX_LIST_LIMIT)


def _summarise(exc: ValidationError) -> str:
    return ", ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
