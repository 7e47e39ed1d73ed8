import pytest

from src.functions.link_resolution.core.config import (
    DEFAULT_TIMER_API_URL,
    ResolverConfig,
    TaskStoreConfig,
)

_RESOLVER_ENV = (
    "TIMER_API_URL",
    "HBLINKS_API_URL",
    "HUBDRIVE_API_URL",
    "HUBCLOUD_API_URL",
    "HUBCDN_API_URL",
    "RESOLVER_USER_AGENT",
    "RESOLVER_TIMEOUT_SECONDS",
    "RESOLVER_MAX_TIMER_HOPS",
    "RESOLVER_MAX_CONCURRENT_PER_PROVIDER",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _RESOLVER_ENV + ("SUPABASE_URL", "SUPABASE_KEY", "TASKS_TABLE", "SUPABASE_SCHEMA"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults():
    config = ResolverConfig()

    assert config.max_timer_hops == 3
    assert config.request_timeout_seconds == 30.0
    assert config.max_concurrent_per_provider is None
    assert config.terminal_keywords == ("hblinks", "hubdrive", "hubcloud", "hubcdn")
    assert config.fast_path_keywords == ("hubcdn.fans",)


@pytest.mark.parametrize(
    "overrides",
    [
        {"timer_api_url": "ftp://timer.example/solve"},
        {"request_timeout_seconds": 0},
        {"max_timer_hops": 0},
        {"max_concurrent_per_provider": -1},
        {"final_keywords": ()},
        {"user_agent": "  "},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValueError):
        ResolverConfig(**overrides)


def test_from_env_uses_defaults_when_unset(clean_env):
    config = ResolverConfig.from_env()

    assert config.timer_api_url == DEFAULT_TIMER_API_URL
    assert config.max_concurrent_per_provider is None


def test_from_env_reads_overrides(clean_env):
    clean_env.setenv("TIMER_API_URL", "https://timer.internal/solve")
    clean_env.setenv("RESOLVER_TIMEOUT_SECONDS", "12.5")
    clean_env.setenv("RESOLVER_MAX_TIMER_HOPS", "5")
    clean_env.setenv("RESOLVER_MAX_CONCURRENT_PER_PROVIDER", "4")

    config = ResolverConfig.from_env()

    assert config.timer_api_url == "https://timer.internal/solve"
    assert config.request_timeout_seconds == 12.5
    assert config.max_timer_hops == 5
    assert config.max_concurrent_per_provider == 4


def test_from_env_rejects_non_numeric_timeout(clean_env):
    clean_env.setenv("RESOLVER_TIMEOUT_SECONDS", "soon")

    with pytest.raises(ValueError, match="RESOLVER_TIMEOUT_SECONDS"):
        ResolverConfig.from_env()


def test_task_store_config_requires_credentials(clean_env):
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        TaskStoreConfig.from_env()


def test_task_store_config_from_env(clean_env):
    clean_env.setenv("SUPABASE_URL", "https://project.supabase.co")
    clean_env.setenv("SUPABASE_KEY", "service-key")
    clean_env.setenv("SUPABASE_SCHEMA", " ")

    config = TaskStoreConfig.from_env()

    assert config.table == "scraping_tasks"
    assert config.schema is None
