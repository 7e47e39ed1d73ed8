"""Core pipeline for resolving download pages into direct links."""

from .config import ResolverConfig, TaskStoreConfig
from .service import LinkResolutionService

__all__ = ["LinkResolutionService", "ResolverConfig", "TaskStoreConfig"]
