"""Configuration models for the link resolution service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from src.shared.utils.env import get_env, get_int_env

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_TIMER_API_URL = "https://time-page-bay-pass-edhc.onrender.com/solve"
DEFAULT_HBLINKS_API_URL = "https://hblinks-dad.onrender.com/solve"
DEFAULT_HUBDRIVE_API_URL = "https://hdhub4u-1.onrender.com/solve"
DEFAULT_HUBCLOUD_API_URL = "http://85.121.5.246:5000/solve"
DEFAULT_HUBCDN_API_URL = "https://hubcdn-bypass.onrender.com/extract"

_TIMEOUT_RANGE = (1.0, 300.0)
_MAX_TIMER_HOPS_RANGE = (1, 10)


def _ensure_non_empty(value: Optional[str], field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be provided")
    return value.strip()


def _ensure_http_url(value: str, field_name: str) -> str:
    value = _ensure_non_empty(value, field_name)
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"{field_name} must be an http(s) URL")
    return value


def _ensure_keywords(value: Tuple[str, ...], field_name: str) -> Tuple[str, ...]:
    if not value or not all(isinstance(item, str) and item for item in value):
        raise ValueError(f"{field_name} must contain at least one non-empty keyword")
    return tuple(value)


@dataclass(frozen=True)
class ResolverConfig:
    """Immutable provider endpoints, domain vocabulary and call limits.

    The keyword tuples drive the stage router; matching is case-sensitive
    substring containment on the current URL.
    """

    timer_api_url: str = DEFAULT_TIMER_API_URL
    hblinks_api_url: str = DEFAULT_HBLINKS_API_URL
    hubdrive_api_url: str = DEFAULT_HUBDRIVE_API_URL
    hubcloud_api_url: str = DEFAULT_HUBCLOUD_API_URL
    hubcdn_api_url: str = DEFAULT_HUBCDN_API_URL
    user_agent: str = DEFAULT_USER_AGENT

    fast_path_keywords: Tuple[str, ...] = ("hubcdn.fans",)
    hblinks_keywords: Tuple[str, ...] = ("hblinks",)
    hubdrive_keywords: Tuple[str, ...] = ("hubdrive",)
    final_keywords: Tuple[str, ...] = ("hubcloud", "hubcdn")
    timer_keywords: Tuple[str, ...] = ("gadgetsweb", "review-tech", "ngwin", "cryptoinsights")

    max_timer_hops: int = 3
    request_timeout_seconds: float = 30.0
    # None or 0 leaves provider calls unbounded.
    max_concurrent_per_provider: Optional[int] = None

    def __post_init__(self) -> None:
        for name in (
            "timer_api_url",
            "hblinks_api_url",
            "hubdrive_api_url",
            "hubcloud_api_url",
            "hubcdn_api_url",
        ):
            _ensure_http_url(getattr(self, name), name)
        _ensure_non_empty(self.user_agent, "user_agent")
        for name in (
            "fast_path_keywords",
            "hblinks_keywords",
            "hubdrive_keywords",
            "final_keywords",
            "timer_keywords",
        ):
            _ensure_keywords(getattr(self, name), name)

        minimum, maximum = _MAX_TIMER_HOPS_RANGE
        if not isinstance(self.max_timer_hops, int) or not minimum <= self.max_timer_hops <= maximum:
            raise ValueError(f"max_timer_hops must be between {minimum} and {maximum}")

        low, high = _TIMEOUT_RANGE
        try:
            timeout = float(self.request_timeout_seconds)
        except (TypeError, ValueError) as exc:
            raise ValueError("request_timeout_seconds must be numeric") from exc
        if timeout < low or timeout > high:
            raise ValueError(f"request_timeout_seconds must be between {low} and {high} seconds")

        cap = self.max_concurrent_per_provider
        if cap is not None and (not isinstance(cap, int) or cap < 0):
            raise ValueError("max_concurrent_per_provider must be a non-negative integer")

    @property
    def terminal_keywords(self) -> Tuple[str, ...]:
        """Keywords of every domain that has a dedicated resolver."""
        return self.hblinks_keywords + self.hubdrive_keywords + self.final_keywords

    @classmethod
    def from_env(cls) -> ResolverConfig:
        """Build configuration from environment variables, falling back to defaults."""
        timeout_raw = get_env("RESOLVER_TIMEOUT_SECONDS")
        try:
            timeout = float(timeout_raw) if timeout_raw else 30.0
        except ValueError as exc:
            raise ValueError("RESOLVER_TIMEOUT_SECONDS must be numeric") from exc

        return cls(
            timer_api_url=get_env("TIMER_API_URL") or DEFAULT_TIMER_API_URL,
            hblinks_api_url=get_env("HBLINKS_API_URL") or DEFAULT_HBLINKS_API_URL,
            hubdrive_api_url=get_env("HUBDRIVE_API_URL") or DEFAULT_HUBDRIVE_API_URL,
            hubcloud_api_url=get_env("HUBCLOUD_API_URL") or DEFAULT_HUBCLOUD_API_URL,
            hubcdn_api_url=get_env("HUBCDN_API_URL") or DEFAULT_HUBCDN_API_URL,
            user_agent=get_env("RESOLVER_USER_AGENT") or DEFAULT_USER_AGENT,
            max_timer_hops=get_int_env("RESOLVER_MAX_TIMER_HOPS", 3),
            request_timeout_seconds=timeout,
            max_concurrent_per_provider=get_int_env("RESOLVER_MAX_CONCURRENT_PER_PROVIDER"),
        )


@dataclass
class TaskStoreConfig:
    """Supabase connection details for the persisted task table."""

    url: str
    key: str
    table: str = "scraping_tasks"
    schema: Optional[str] = None

    def validate(self) -> None:
        self.url = _ensure_non_empty(self.url, "url")
        self.key = _ensure_non_empty(self.key, "key")
        self.table = _ensure_non_empty(self.table, "table")
        if self.schema is not None and not self.schema.strip():
            self.schema = None

    @classmethod
    def from_env(cls) -> TaskStoreConfig:
        url = get_env("SUPABASE_URL")
        key = get_env("SUPABASE_KEY")
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the task store")
        config = cls(
            url=url,
            key=key,
            table=get_env("TASKS_TABLE") or "scraping_tasks",
            schema=get_env("SUPABASE_SCHEMA"),
        )
        config.validate()
        return config
