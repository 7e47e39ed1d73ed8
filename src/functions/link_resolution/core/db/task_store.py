"""Supabase-backed persistence for resolution tasks.

Each task row is written at most twice by the service: once on creation
with per-link placeholders, and once when the fan-out finishes.

Usage:
    store = TaskStore()
    task = store.create(Task(id=new_task_id(), source_url=url, links=placeholders))
    recent = store.list_recent(limit=20)
    store.update(task.id, status="completed", links=final_links)
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from src.shared.db import SupabaseConfig, get_supabase_client

from ..config import TaskStoreConfig
from ..contracts import Task

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


class TaskStoreError(RuntimeError):
    """Raised when the task table rejects a write."""


def new_task_id() -> str:
    return uuid.uuid4().hex


class TaskStore:
    """Create, list, fetch and update task rows in Supabase."""

    def __init__(self, client=None, *, config: Optional[TaskStoreConfig] = None):
        """Initialize store.

        Args:
            client: Optional Supabase client. If None, one is created lazily
                from ``config`` (or the environment) on first use.
            config: Optional table/connection settings.
        """
        self._client = client
        self._config = config
        self.table_name = config.table if config else "scraping_tasks"

    @property
    def client(self):
        """Lazy-load Supabase client."""
        if self._client is None:
            config = self._config or TaskStoreConfig.from_env()
            self.table_name = config.table
            self._client = get_supabase_client(
                SupabaseConfig(url=config.url, key=config.key, schema=config.schema or "public")
            )
        return self._client

    def create(self, task: Task) -> Task:
        """Insert a new task row.

        Raises:
            TaskStoreError: If the insert returns no data
        """
        response = self.client.table(self.table_name).insert(task.to_row()).execute()
        if not response.data:
            raise TaskStoreError(f"Failed to create task {task.id}")

        logger.info("Created task %s for %s (%d link(s))", task.id, task.source_url, len(task.links))
        return Task.from_row(response.data[0])

    def get(self, task_id: str) -> Optional[Task]:
        response = (
            self.client.table(self.table_name)
            .select("*")
            .eq("id", task_id)
            .limit(1)
            .execute()
        )
        if response.data:
            return Task.from_row(response.data[0])
        return None

    def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> List[Task]:
        """Return the newest tasks first.

        Args:
            limit: Maximum rows, clamped to 1..MAX_LIST_LIMIT
        """
        limit = max(1, min(int(limit), MAX_LIST_LIMIT))
        response = (
            self.client.table(self.table_name)
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [Task.from_row(row) for row in (response.data or [])]

    def update(self, task_id: str, **fields: Any) -> Task:
        """Apply a partial update to a task row.

        Raises:
            TaskStoreError: If no row was updated
        """
        update: Dict[str, Any] = {
            key: getattr(value, "value", value) for key, value in fields.items()
        }
        response = (
            self.client.table(self.table_name)
            .update(update)
            .eq("id", task_id)
            .execute()
        )
        if not response.data:
            raise TaskStoreError(f"Task {task_id} not found for update")

        logger.info("Updated task %s: %s", task_id, ", ".join(sorted(update)))
        return Task.from_row(response.data[0])
