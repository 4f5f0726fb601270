"""Renoir Floridablanca parser using JSON-LD event data on film pages."""

import json
import logging
import re
from datetime import date
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from cinehub.errors import ParseStructureError
from cinehub.parsers.base import DetailPageParser
from cinehub.parsers.models import ScreeningRecord
from cinehub.utils.text import clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.cinesrenoir.com"
LISTING_URL = f"{BASE_URL}/cine/renoir-floridablanca/cartelera/"
THEATER_NAME = "Renoir Floridablanca"

_FILM_LINK_RE = re.compile(r"^/pelicula/.+/$")


class RenoirParser(DetailPageParser):
    """
    Parser for Renoir Floridablanca.

    The cartelera page only links to ``/pelicula/<slug>/`` film pages. Each
    film page embeds schema.org ``Event`` objects in JSON-LD blocks, one per
    screening across the whole Renoir chain; only events located at
    Floridablanca are kept.
    """

    source = "renoir"
    slug = "renoir"
    theater = THEATER_NAME
    base_url = BASE_URL

    def listing_url(self, month: str) -> str:
        return LISTING_URL

    def extract_detail_urls(self, listing_html: str) -> list[str]:
        soup = BeautifulSoup(listing_html, "html.parser")
        urls: list[str] = []
        for link in soup.find_all("a", href=_FILM_LINK_RE):
            url = urljoin(BASE_URL, str(link["href"]))
            if url not in urls:
                urls.append(url)

        if not urls:
            raise ParseStructureError("Renoir: no film links found in cartelera page")

        logger.debug(f"Renoir: {len(urls)} film pages in cartelera")
        return urls

    def parse(
        self,
        payload: str,
        month: str | None = None,
        page_url: str | None = None,
    ) -> list[ScreeningRecord]:
        soup = BeautifulSoup(payload, "html.parser")

        title = ""
        slots: list[tuple[date, str]] = []
        for event in self._events(soup):
            if event.get("@type") != "Event":
                continue
            location = event.get("location")
            if not isinstance(location, dict) or location.get("name") != THEATER_NAME:
                continue

            title = title or clean_text(str(event.get("name") or ""))
            slot = self._parse_start(str(event.get("startDate") or ""))
            if slot is None:
                logger.warning(f"Renoir: bad startDate {event.get('startDate')!r} on {page_url}")
                continue
            if slot not in slots:
                slots.append(slot)

        if not title:
            h1 = soup.find("h1")
            if isinstance(h1, Tag):
                title = clean_text(h1.get_text())

        if not slots:
            return []
        if not title:
            logger.warning(f"Renoir: screenings without a title on {page_url}")
            return []

        return [
            ScreeningRecord(
                title=title,
                date=slot_date,
                time=slot_time,
                source_id=self.source,
                source_url=page_url,
            )
            for slot_date, slot_time in slots
        ]

    @staticmethod
    def _events(soup: BeautifulSoup) -> list[dict[str, Any]]:
        """Flatten every JSON-LD block into a list of objects."""
        events: list[dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                data = json.loads(script.string or "")
            except json.JSONDecodeError as e:
                logger.warning(f"Renoir: invalid JSON-LD block: {e}")
                continue

            items = data if isinstance(data, list) else [data]
            for item in items:
                if isinstance(item, dict) and isinstance(item.get("@graph"), list):
                    events.extend(i for i in item["@graph"] if isinstance(i, dict))
                elif isinstance(item, dict):
                    events.append(item)
        return events

    @staticmethod
    def _parse_start(start: str) -> tuple[date, str] | None:
        """Split "2025-11-21T16:00[:00]" into (date, "HH:MM")."""
        date_part, sep, time_part = start.partition("T")
        if not sep:
            return None
        try:
            slot_date = date.fromisoformat(date_part)
        except ValueError:
            return None
        time_str = time_part[:5]
        if not re.match(r"^\d{2}:\d{2}$", time_str):
            return None
        return slot_date, time_str
