"""Letterboxd page scraper: best-effort metadata for new catalog entries."""
import json
import logging
import re
from dataclasses import dataclass, asdict
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from filmnight.config import settings

logger = logging.getLogger(__name__)

LETTERBOXD_BASE = "letterboxd.com"

_DURATION_RE = re.compile(r"PT(\d+)M", re.I)


@dataclass
class LetterboxdMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    poster_image: Optional[str] = None
    runtime_minutes: Optional[int] = None
    director: Optional[str] = None

    def as_film_fields(self) -> dict:
        """Map onto Film column names, dropping anything not found."""
        fields = {
            "title": self.title,
            "synopsis": self.description,
            "poster_image": self.poster_image,
            "runtime_minutes": self.runtime_minutes,
            "director": self.director,
        }
        return {k: v for k, v in fields.items() if v is not None}


def ensure_absolute_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    if url.startswith("http"):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"https://www.{LETTERBOXD_BASE}{url}"
    return url


def _og_content(soup: BeautifulSoup, prop: str) -> Optional[str]:
    tag = soup.find("meta", property=f"og:{prop}")
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def _deferred_data(soup: BeautifulSoup) -> dict:
    script = soup.find("script", id="film-page-deferred-data")
    if not script or not script.string:
        return {}
    try:
        data = json.loads(script.string)
    except ValueError as e:
        logger.warning("Unreadable film-page-deferred-data: %s", e)
        return {}
    return data if isinstance(data, dict) else {}


def parse_film_page(page: str) -> LetterboxdMetadata:
    soup = BeautifulSoup(page, "html.parser")
    metadata = LetterboxdMetadata()

    title = _og_content(soup, "title")
    if title:
        # "Stalker (1979) • Directed by ..." -> "Stalker (1979)"
        metadata.title = title.split("•", 1)[0].strip() or None
    metadata.description = _og_content(soup, "description")
    metadata.poster_image = ensure_absolute_url(_og_content(soup, "image"))

    data = _deferred_data(soup)
    duration = _DURATION_RE.search(str(data.get("duration") or ""))
    if duration:
        metadata.runtime_minutes = int(duration.group(1))
    directors = data.get("director")
    if isinstance(directors, list) and directors and isinstance(directors[0], dict):
        metadata.director = directors[0].get("name") or None

    return metadata


def fetch_letterboxd_metadata(url: str, client: Optional[httpx.Client] = None) -> Optional[LetterboxdMetadata]:
    """Fetch and parse a film page. Returns None when the page can't be read."""
    headers = {"user-agent": settings.LETTERBOXD_USER_AGENT}
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=settings.LETTERBOXD_TIMEOUT_SECONDS, follow_redirects=True)
    try:
        response = client.get(url, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch Letterboxd metadata for %s: %s", url, e)
        return None
    finally:
        if owns_client:
            client.close()

    metadata = parse_film_page(response.text)
    logger.info("Fetched Letterboxd metadata for %s: %s", url, asdict(metadata))
    return metadata
