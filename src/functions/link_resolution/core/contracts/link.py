"""Link and progress event contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LinkStatus(str, Enum):
    """Lifecycle of a single link within a resolution run."""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class Severity(str, Enum):
    """Severity attached to each progress event."""
    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"


# Event status markers understood by stream consumers.
EVENT_DONE = "done"
EVENT_ERROR = "error"
EVENT_FINISHED = "finished"


@dataclass(frozen=True)
class ProgressEvent:
    """One progress line emitted while a link moves through the pipeline."""

    link_id: str
    message: str
    severity: Severity = Severity.INFO
    final_url: Optional[str] = None
    status: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status == EVENT_FINISHED

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the NDJSON wire form; optional keys only when set."""

        payload: Dict[str, Any] = {
            "link_id": self.link_id,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.final_url is not None:
            payload["final_url"] = self.final_url
        if self.status is not None:
            payload["status"] = self.status
        return payload


@dataclass
class Link:
    """A unit of work: one candidate URL resolved to a direct download."""

    id: str
    url: str
    name: Optional[str] = None
    status: LinkStatus = LinkStatus.PENDING
    final_url: Optional[str] = None
    error_message: Optional[str] = None
    log: List[ProgressEvent] = field(default_factory=list)
    source_url: str = field(default="")

    def __post_init__(self) -> None:
        self.id = str(self.id)
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValueError(f"Link {self.id!r} requires a non-empty url")
        self.url = self.url.strip()
        if not self.source_url:
            self.source_url = self.url

    @property
    def is_terminal(self) -> bool:
        return self.status in (LinkStatus.DONE, LinkStatus.ERROR)

    def record(self, event: ProgressEvent) -> None:
        """Append an event to the link's log."""
        self.log.append(event)

    def to_record(self) -> Dict[str, Any]:
        """Final per-link result stored on the task row (no log lines)."""

        return {
            "id": self.id,
            "name": self.name,
            "link": self.source_url,
            "status": self.status.value,
            "final_link": self.final_url,
            "error": self.error_message,
        }

    def placeholder_record(self) -> Dict[str, Any]:
        """Per-link entry written when the task is first created."""

        return {
            "id": self.id,
            "name": self.name,
            "link": self.source_url,
            "status": LinkStatus.PROCESSING.value,
            "logs": [],
        }
