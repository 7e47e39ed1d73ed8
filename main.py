"""Deployment wrapper for the link resolution Cloud Functions."""

from __future__ import annotations

import sys
from pathlib import Path

import flask

project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.functions.link_resolution.functions.main import (
    health_check_handler,
    stream_solve_handler,
    tasks_handler,
)


def tasks(request: flask.Request) -> flask.Response:
    """GET lists recent tasks; POST ``{"url": ...}`` starts a background run."""
    return tasks_handler(request)


def stream_solve(request: flask.Request) -> flask.Response:
    """POST ``{"links": [{"id", "link"}]}`` and receive NDJSON progress."""
    return stream_solve_handler(request)


def health_check(request: flask.Request) -> flask.Response:
    return health_check_handler(request)
