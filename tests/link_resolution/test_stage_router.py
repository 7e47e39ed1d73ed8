import pytest

from src.functions.link_resolution.core.config import ResolverConfig
from src.functions.link_resolution.core.routing import Stage, StageRouter


@pytest.fixture
def router():
    return StageRouter(ResolverConfig())


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://hubcdn.fans/file/abc", Stage.FAST_PATH_BYPASS),
        ("https://hblinks.pro/archives/123", Stage.TERMINAL_HBLINKS),
        ("https://hubdrive.wales/file/42", Stage.TERMINAL_HUBDRIVE),
        ("https://hubcloud.one/drive/xyz", Stage.FINAL_RESOLVE),
        ("https://hubcdn.xyz/dl/1", Stage.FINAL_RESOLVE),
        ("https://gadgetsweb.xyz/?id=abc", Stage.UNCLASSIFIED),
        ("https://example.com/page", Stage.UNCLASSIFIED),
    ],
)
def test_classify_follows_pipeline_order(router, url, expected):
    assert router.classify(url) is expected


def test_classify_is_idempotent(router):
    url = "https://hblinks.pro/archives/123"

    assert router.classify(url) is router.classify(url)


def test_matching_is_case_sensitive(router):
    assert router.classify("https://HBLINKS.pro/archives/1") is Stage.UNCLASSIFIED


def test_fast_path_url_also_matches_final_keywords(router):
    url = "https://hubcdn.fans/file/abc"

    assert router.matches(Stage.FAST_PATH_BYPASS, url)
    assert router.matches(Stage.FINAL_RESOLVE, url)
    assert not router.matches(Stage.TERMINAL_HBLINKS, url)


def test_matches_unclassified_only_when_nothing_else_does(router):
    assert router.matches(Stage.UNCLASSIFIED, "https://example.com/page")
    assert not router.matches(Stage.UNCLASSIFIED, "https://hubdrive.wales/file/1")


def test_terminal_domain_and_timer_page_detection(router):
    assert router.is_terminal_domain("https://hblinks.pro/a")
    assert router.is_terminal_domain("https://hubdrive.wales/b")
    assert router.is_terminal_domain("https://hubcloud.one/c")
    assert not router.is_terminal_domain("https://gadgetsweb.xyz/?id=1")

    for url in (
        "https://gadgetsweb.xyz/?id=1",
        "https://review-tech.site/x",
        "https://ngwin.com/y",
        "https://cryptoinsights.site/z",
    ):
        assert router.is_timer_page(url)
    assert not router.is_timer_page("https://hblinks.pro/a")


def test_router_uses_configured_vocabulary():
    config = ResolverConfig(timer_keywords=("shortlink",), hblinks_keywords=("mirrorhub",))
    router = StageRouter(config)

    assert router.is_timer_page("https://shortlink.io/1")
    assert not router.is_timer_page("https://gadgetsweb.xyz/?id=1")
    assert router.classify("https://mirrorhub.net/2") is Stage.TERMINAL_HBLINKS
