"""Verdi Barcelona parser using the title attributes of showtime links."""

import logging
import re
from datetime import date
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from cinehub.errors import ParseStructureError
from cinehub.parsers.base import DetailPageParser
from cinehub.parsers.models import ScreeningRecord
from cinehub.utils.text import clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://barcelona.cines-verdi.com"
LISTING_URL = f"{BASE_URL}/cartelera"

# Showtime links carry title="20251106 17:30"
_SHOWTIME_ATTR_RE = re.compile(r"^(\d{8})\s+(\d{2}:\d{2})$")


class VerdiParser(DetailPageParser):
    """
    Parser for Verdi Barcelona (Gràcia).

    The cartelera links each film through an ``<h2><a href="/slug">``
    heading. On the film page every bookable session is a link whose
    ``title`` attribute encodes the timestamp as ``YYYYMMDD HH:MM``.
    """

    source = "verdi"
    slug = "verdi"
    theater = "Verdi Barcelona"
    base_url = BASE_URL

    def listing_url(self, month: str) -> str:
        return LISTING_URL

    def extract_detail_urls(self, listing_html: str) -> list[str]:
        soup = BeautifulSoup(listing_html, "html.parser")
        urls: list[str] = []
        for heading in soup.find_all("h2"):
            link = heading.find("a", href=True)
            if not isinstance(link, Tag):
                continue
            path = str(link["href"])
            # Skip external links and the listing itself
            if not path.startswith("/") or path.startswith("//") or "cartelera" in path:
                continue
            url = urljoin(BASE_URL, path)
            if url not in urls:
                urls.append(url)

        if not urls:
            raise ParseStructureError("Verdi: no film links found in cartelera page")

        return urls

    def parse(
        self,
        payload: str,
        month: str | None = None,
        page_url: str | None = None,
    ) -> list[ScreeningRecord]:
        soup = BeautifulSoup(payload, "html.parser")

        h1 = soup.find("h1")
        title = clean_text(h1.get_text(" ")) if isinstance(h1, Tag) else ""

        slots: list[tuple[date, str]] = []
        for tag in soup.find_all(attrs={"title": _SHOWTIME_ATTR_RE}):
            m = _SHOWTIME_ATTR_RE.match(str(tag["title"]).strip())
            if not m:
                continue
            try:
                slot_date = date(int(m.group(1)[:4]), int(m.group(1)[4:6]), int(m.group(1)[6:]))
            except ValueError:
                logger.warning(f"Verdi: invalid session date {m.group(1)!r} on {page_url}")
                continue
            slot = (slot_date, m.group(2))
            if slot not in slots:
                slots.append(slot)

        if not slots:
            return []
        if not title:
            logger.warning(f"Verdi: screenings without a title on {page_url}")
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
