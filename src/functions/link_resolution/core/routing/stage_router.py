"""Stage classification for the current URL of a link."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

from ..config import ResolverConfig


class Stage(str, Enum):
    """Pipeline stage selected for a URL."""
    FAST_PATH_BYPASS = "fast_path_bypass"
    TERMINAL_HBLINKS = "terminal_hblinks"
    TERMINAL_HUBDRIVE = "terminal_hubdrive"
    FINAL_RESOLVE = "final_resolve"
    UNCLASSIFIED = "unclassified"


class StageRouter:
    """Pure substring classifier over the configured domain vocabulary.

    ``classify`` returns the first matching stage in pipeline order. The
    orchestrator gates steps 4-6 with ``matches`` instead, since a fast-path
    URL (``hubcdn.fans``) also carries the final-hop keyword ``hubcdn``.
    """

    def __init__(self, config: ResolverConfig) -> None:
        self._keywords: Dict[Stage, Tuple[str, ...]] = {
            Stage.FAST_PATH_BYPASS: config.fast_path_keywords,
            Stage.TERMINAL_HBLINKS: config.hblinks_keywords,
            Stage.TERMINAL_HUBDRIVE: config.hubdrive_keywords,
            Stage.FINAL_RESOLVE: config.final_keywords,
        }
        self._terminal_keywords = config.terminal_keywords
        self._timer_keywords = config.timer_keywords

    def classify(self, url: str) -> Stage:
        for stage, keywords in self._keywords.items():
            if _contains_any(url, keywords):
                return stage
        return Stage.UNCLASSIFIED

    def matches(self, stage: Stage, url: str) -> bool:
        """True when ``url`` carries one of ``stage``'s own keywords."""
        keywords = self._keywords.get(stage)
        if keywords is None:
            return self.classify(url) is Stage.UNCLASSIFIED
        return _contains_any(url, keywords)

    def is_terminal_domain(self, url: str) -> bool:
        return _contains_any(url, self._terminal_keywords)

    def is_timer_page(self, url: str) -> bool:
        return _contains_any(url, self._timer_keywords)


def _contains_any(url: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in url for keyword in keywords)
