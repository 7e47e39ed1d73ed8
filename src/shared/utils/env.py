"""Environment variable helpers.

Configuration for the resolver providers and the task store is read from
the process environment, optionally seeded from a ``.env`` file.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import List, Optional
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env(env_file: Optional[str] = None, override: bool = False) -> None:
    """Load environment variables from .env files.

    Args:
        env_file: Explicit .env path. If None, every .env found from the
                 filesystem root down to the current directory is loaded,
                 nearest last.
        override: Whether to override existing environment variables.
    """
    if env_file:
        candidates = [Path(env_file)]
    else:
        current = Path.cwd()
        candidates = [parent / ".env" for parent in reversed(current.parents)]
        candidates.append(current / ".env")

    loaded: List[Path] = []
    for path in candidates:
        if path in loaded or not path.exists():
            continue
        load_dotenv(path, override=override)
        loaded.append(path)
        logger.debug("Loaded environment from %s", path)

    if not loaded:
        logger.debug("No .env file found, using system environment")


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


def get_int_env(key: str, default: Optional[int] = None) -> Optional[int]:
    """Read an integer environment variable.

    Args:
        key: Environment variable name
        default: Returned when the variable is unset or blank

    Raises:
        ValueError: If the variable is set but not an integer
    """
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be an integer, got {raw!r}") from exc
