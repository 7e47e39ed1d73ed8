"""Persisted task contract for polling-mode resolution runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class TaskStatus(str, Enum):
    """Run-level status of a persisted task."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _now_iso() -> str:
    """Current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Task:
    """A resolution run over the links extracted from one source page.

    ``links`` holds plain per-link records as stored in the task table:
    placeholders while processing, final results once the run completes.
    """

    id: str
    source_url: str
    status: TaskStatus = TaskStatus.PROCESSING
    created_at: str = field(default_factory=_now_iso)
    metadata: Optional[Dict[str, Any]] = None
    links: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Task":
        """Create a Task from a database row."""
        return cls(
            id=str(row["id"]),
            source_url=row.get("url") or "",
            status=TaskStatus(row.get("status") or TaskStatus.PROCESSING.value),
            created_at=row.get("created_at") or _now_iso(),
            metadata=row.get("metadata"),
            links=list(row.get("links") or []),
            error=row.get("error"),
        )

    def to_row(self) -> Dict[str, Any]:
        """Serialise to the column layout of the task table."""
        return {
            "id": self.id,
            "url": self.source_url,
            "status": self.status.value,
            "created_at": self.created_at,
            "metadata": self.metadata,
            "links": self.links,
            "error": self.error,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for API responses."""
        return self.to_row()
