"""Filmoteca de Catalunya parser for the monthly agenda calendar."""

import logging
import re
from datetime import date
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from cinehub.errors import ParseStructureError
from cinehub.parsers.base import BaseParser
from cinehub.parsers.models import ScreeningRecord
from cinehub.utils.dates import parse_month
from cinehub.utils.text import clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.filmoteca.cat"
AGENDA_URL = f"{BASE_URL}/web/ca/view-agenda-mensual"

_TIME_RE = re.compile(r"\b(\d{2}:\d{2})\b")
_GUESTS_RE = re.compile(r'alert\("([^"]*)"\)')


class FilmotecaParser(BaseParser):
    """
    Parser for Filmoteca de Catalunya.

    The agenda is one page per month. Each day is an ``<h2>Dijous <span>6</span></h2>``
    heading followed by a ``div.column-list`` holding a ``<ul>`` of screenings.
    The headings carry only the day number, so the year and month come from
    the requested month.
    """

    source = "filmoteca"
    slug = "filmoteca"
    theater = "Filmoteca de Catalunya"
    base_url = BASE_URL
    default_genre = "Film"

    def listing_url(self, month: str) -> str:
        return f"{AGENDA_URL}?m={month}"

    def parse(self, payload: str, month: str | None = None) -> list[ScreeningRecord]:
        """Extract every screening in the monthly agenda."""
        if month is None:
            raise ValueError("Filmoteca agenda needs a context month (YYYY-MM)")
        year, month_num = parse_month(month)

        soup = BeautifulSoup(payload, "html.parser")
        day_headings = [h2 for h2 in soup.find_all("h2") if self._day_number(h2) is not None]
        if not day_headings:
            raise ParseStructureError("Filmoteca: no day sections found in agenda page")

        records: list[ScreeningRecord] = []
        for heading in day_headings:
            day_number = self._day_number(heading)
            try:
                day = date(year, month_num, day_number)
            except ValueError:
                logger.warning(f"Filmoteca: invalid day {day_number} for {month}")
                continue

            screening_list = self._screening_list(heading)
            if screening_list is None:
                continue

            for item in screening_list.find_all("li"):
                try:
                    record = self._parse_screening(item, day)
                    if record:
                        records.append(record)
                except Exception as e:
                    logger.warning(f"Filmoteca: failed to parse screening on {day}: {e}")

        logger.debug(f"Filmoteca: {len(records)} screenings in {month}")
        return records

    @staticmethod
    def _day_number(heading: Tag) -> int | None:
        span = heading.find("span")
        if not isinstance(span, Tag):
            return None
        text = span.get_text(strip=True)
        return int(text) if text.isdigit() else None

    @staticmethod
    def _screening_list(heading: Tag) -> Tag | None:
        """Find the <ul> belonging to a day heading, not the next day's."""
        column = heading.find_next("div", class_="column-list")
        if not isinstance(column, Tag) or column.find_previous("h2") is not heading:
            return None
        ul = column.find("ul")
        return ul if isinstance(ul, Tag) else None

    def _parse_screening(self, item: Tag, day: date) -> ScreeningRecord | None:
        time_match = _TIME_RE.search(item.get_text(" "))
        if not time_match:
            return None

        # The title link is the first anchor; the cycle link sits inside a <span>
        link = item.find("a", href=True)
        if not isinstance(link, Tag) or link.find_parent("span") is not None:
            return None
        title = clean_text(link.get_text())
        if not title:
            return None

        href = str(link.get("href", ""))
        film_url = urljoin(BASE_URL, href) if href else None
        cycle = self._cycle(item)

        return ScreeningRecord(
            title=title,
            date=day,
            time=time_match.group(1),
            source_id=self.source,
            alt_title=self._alt_title(link) or None,
            source_url=film_url,
            genre=[cycle] if cycle else [],
            cycle=cycle,
            guests=self._guests(item),
        )

    @staticmethod
    def _alt_title(link: Tag) -> str:
        """
        Text between the title link and the cycle <span>.

        Only text closed off by a <span> counts; screenings without a cycle
        have no alt title, and the guest-note link is never part of one.
        """
        parts: list[str] = []
        for sibling in link.next_siblings:
            if isinstance(sibling, Tag) and sibling.name == "span":
                return clean_text("".join(parts))
            if isinstance(sibling, Tag) and sibling.get("onclick"):
                break
            if isinstance(sibling, NavigableString):
                parts.append(str(sibling))
            elif isinstance(sibling, Tag):
                parts.append(sibling.get_text())
        return ""

    @staticmethod
    def _cycle(item: Tag) -> str | None:
        for span in item.find_all("span"):
            cycle_link = span.find("a")
            if isinstance(cycle_link, Tag):
                return clean_text(cycle_link.get_text()) or None
        return None

    @staticmethod
    def _guests(item: Tag) -> str | None:
        tag = item.find(attrs={"onclick": _GUESTS_RE})
        if not isinstance(tag, Tag):
            return None
        m = _GUESTS_RE.search(str(tag.get("onclick", "")))
        return clean_text(m.group(1)) if m else None
