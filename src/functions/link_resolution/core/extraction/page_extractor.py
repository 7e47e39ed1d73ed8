"""Source-page extraction: candidate download links plus descriptive metadata."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from ..config import ResolverConfig
from ..routing import StageRouter

_QUALITY_PATTERN = re.compile(r"\b(480p|720p|1080p|2160p|4K)\b", re.IGNORECASE)
_LANGUAGE_PATTERN = re.compile(r"Languages?\s*[:\-]\s*([^\n|]+)", re.IGNORECASE)
_AUDIO_PATTERN = re.compile(r"Audio\s*[:\-]\s*([^\n|]+)", re.IGNORECASE)
_AUDIO_LABELS = ("Dual Audio", "Multi Audio", "Hindi Dubbed")
_HEADINGS = ["h1", "h2", "h3", "h4", "h5"]


class ExtractionError(RuntimeError):
    """Raised by extractors that cannot read the source page at all."""


@dataclass(slots=True)
class CandidateLink:
    """One link found on the source page."""

    name: Optional[str]
    link: str


@dataclass(slots=True)
class ExtractionResult:
    """Outcome of extracting a source page."""

    status: str
    links: List[CandidateLink] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class PageExtractor(Protocol):
    """Anything that turns a source URL into candidate links."""

    async def extract(self, url: str) -> ExtractionResult:
        ...


class HttpPageExtractor:
    """Fetches a source page with httpx and scans it with BeautifulSoup.

    Anchors are kept when their href carries a timer-page or resolver-domain
    keyword from the resolver configuration.
    """

    def __init__(
        self,
        config: ResolverConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._router = StageRouter(config)
        self._client = client
        self._logger = logger or logging.getLogger(__name__)

    async def extract(self, url: str) -> ExtractionResult:
        try:
            final_url, html = await self._fetch(url)
        except httpx.HTTPError as exc:
            self._logger.warning("Source page fetch failed for %s: %s", url, exc)
            return ExtractionResult(status="error", message=f"Failed to fetch source page: {exc}")

        return self.parse(html, final_url)

    def parse(self, html: str, base_url: str) -> ExtractionResult:
        """Extract candidate links and metadata from page markup."""

        soup = BeautifulSoup(html, "lxml")
        links: List[CandidateLink] = []
        seen = set()
        for anchor in soup.find_all("a", href=True):
            href = urljoin(base_url, anchor["href"].strip())
            if href in seen or not self._is_candidate(href):
                continue
            seen.add(href)
            links.append(CandidateLink(name=self._link_name(anchor, len(links) + 1), link=href))

        self._logger.debug("Found %d candidate link(s) on %s", len(links), base_url)
        return ExtractionResult(status="success", links=links, metadata=self._metadata(soup))

    async def _fetch(self, url: str) -> tuple[str, str]:
        headers = {"User-Agent": self._config.user_agent, "Accept-Language": "en-US,en;q=0.9"}
        if self._client is not None:
            response = await self._client.get(url, headers=headers)
            response.raise_for_status()
            return str(response.url), response.text

        async with httpx.AsyncClient(
            headers=headers,
            follow_redirects=True,
            timeout=self._config.request_timeout_seconds,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return str(response.url), response.text

    def _is_candidate(self, href: str) -> bool:
        if not href.startswith(("http://", "https://")):
            return False
        return self._router.is_terminal_domain(href) or self._router.is_timer_page(href)

    @staticmethod
    def _link_name(anchor, position: int) -> str:
        text = anchor.get_text(" ", strip=True)
        if text:
            return text
        heading = anchor.find_previous(_HEADINGS)
        if heading is not None and heading.get_text(strip=True):
            return heading.get_text(" ", strip=True)
        return f"Link {position}"

    @staticmethod
    def _metadata(soup: BeautifulSoup) -> Dict[str, Any]:
        text = soup.get_text("\n", strip=True)

        title_tag = soup.find("meta", attrs={"property": "og:title"})
        if title_tag and title_tag.get("content"):
            title = title_tag["content"].strip()
        elif soup.title and soup.title.string:
            title = soup.title.string.strip()
        else:
            heading = soup.find("h1")
            title = heading.get_text(" ", strip=True) if heading else None

        qualities: List[str] = []
        for match in _QUALITY_PATTERN.findall(text):
            value = match.upper() if match.lower() == "4k" else match.lower()
            if value not in qualities:
                qualities.append(value)

        language_match = _LANGUAGE_PATTERN.search(text)
        audio_match = _AUDIO_PATTERN.search(text)
        audio_label = audio_match.group(1).strip() if audio_match else None
        if audio_label is None:
            audio_label = next((label for label in _AUDIO_LABELS if label.lower() in text.lower()), None)

        return {
            "title": title,
            "quality": ", ".join(qualities) or None,
            "languages": language_match.group(1).strip() if language_match else None,
            "audio_label": audio_label,
        }
