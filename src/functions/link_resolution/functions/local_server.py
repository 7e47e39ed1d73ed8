"""Local development server for the link resolution Cloud Functions."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from flask import Flask, request

# Ensure project root is on sys.path
project_root = Path(__file__).parent.parent.parent.parent.parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.functions.link_resolution.functions.main import (
    health_check_handler,
    stream_solve_handler,
    tasks_handler,
)

app = Flask(__name__)


@app.route("/tasks", methods=["GET", "POST", "OPTIONS"])
def local_tasks():
    """Proxy task listing and triggers to the Cloud Function handler."""
    return tasks_handler(request)


@app.route("/stream_solve", methods=["POST", "OPTIONS"])
def local_stream_solve():
    """Proxy streaming resolution to the Cloud Function handler."""
    return stream_solve_handler(request)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return health_check_handler(request)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    print(f"Starting local link resolution server on http://localhost:{port}")
    print(
        "Test with: curl -N -X POST http://localhost:{port}/stream_solve -H 'Content-Type: application/json' "
        "-d '{\"links\": [{\"id\": \"1\", \"link\": \"https://hblinks.example/abc\"}]}'".replace(
            "{port}", str(port)
        )
    )
    print("")
    app.run(host="0.0.0.0", port=port, debug=True, threaded=True)
