"""Zumzeig cinema parser for the sessions listing."""

import logging
import re
from datetime import date
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from cinehub.errors import ParseStructureError
from cinehub.parsers.base import BaseParser
from cinehub.parsers.models import ScreeningRecord
from cinehub.utils.text import clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://zumzeigcine.coop"
SESSIONS_URL = f"{BASE_URL}/cinema/sessions/"

# Shown instead of session dates while tickets are not yet on sale
_NOT_ON_SALE = "Entrades pròximament a la venda"

# "Dj 6.11.25" -> day 6, month 11, year 2025
_SESSION_DATE_RE = re.compile(r"\w+\s+(\d{1,2})\.(\d{1,2})\.(\d{2})")
_SESSION_TIME_RE = re.compile(r"(\d{2}:\d{2})")


class ZumzeigParser(BaseParser):
    """
    Parser for Zumzeig (Sants).

    The sessions page lists every upcoming film as an ``<a class="film">``
    card with its title, poster, director and a ``div.session`` per
    screening. The listing is not month-scoped, so the month argument is
    ignored and the aggregator filters afterwards.
    """

    source = "zumzeig"
    slug = "zumzeig"
    theater = "Zumzeig"
    base_url = BASE_URL
    default_genre = "Film"

    def listing_url(self, month: str) -> str:
        return SESSIONS_URL

    def parse(self, payload: str, month: str | None = None) -> list[ScreeningRecord]:
        soup = BeautifulSoup(payload, "html.parser")
        cards = soup.find_all("a", class_=re.compile(r"^film"), href=True)
        if not cards:
            raise ParseStructureError("Zumzeig: no film cards found in sessions page")

        records: list[ScreeningRecord] = []
        for card in cards:
            if not isinstance(card, Tag):
                continue
            try:
                records.extend(self._parse_card(card))
            except Exception as e:
                logger.warning(f"Zumzeig: failed to parse film card: {e}")

        return records

    def _parse_card(self, card: Tag) -> list[ScreeningRecord]:
        heading = card.find("h2", class_=re.compile(r"^filmtitle"))
        if not isinstance(heading, Tag):
            return []
        title = self._title(heading)
        if not title:
            return []

        href = str(card.get("href", ""))
        film_url = urljoin(BASE_URL, href) if href else None

        poster: str | None = None
        img = card.find("img", class_="thumbfilm")
        if isinstance(img, Tag) and img.get("src"):
            poster = urljoin(BASE_URL, str(img["src"]))

        director, cycle = self._director_and_cycle(card)
        film_type = self._film_type(heading)
        genre = [cycle] if cycle else [film_type] if film_type else []

        records: list[ScreeningRecord] = []
        for session_date, session_time in self._sessions(card):
            records.append(
                ScreeningRecord(
                    title=title,
                    date=session_date,
                    time=session_time,
                    source_id=self.source,
                    raw_director=director,
                    source_url=film_url,
                    genre=genre,
                    poster=poster,
                    cycle=cycle,
                )
            )
        return records

    @staticmethod
    def _title(heading: Tag) -> str:
        """Title text is everything in the heading before its first <span>."""
        parts: list[str] = []
        for child in heading.children:
            if isinstance(child, Tag) and child.name == "span":
                break
            if isinstance(child, NavigableString):
                parts.append(str(child))
            elif isinstance(child, Tag):
                parts.append(child.get_text())
        return clean_text("".join(parts))

    @staticmethod
    def _film_type(heading: Tag) -> str | None:
        for css_class in heading.get("class", []):
            if css_class.startswith("tipo_"):
                return css_class.removeprefix("tipo_") or None
        return None

    @staticmethod
    def _director_and_cycle(card: Tag) -> tuple[str | None, str | None]:
        """
        Read the ``div.autor`` block.

        Festival screenings nest a second ``div.autor`` holding the cycle
        name; the director is the outer block's own text.
        """
        autor = card.find("div", class_="autor")
        if not isinstance(autor, Tag):
            return None, None

        cycle: str | None = None
        nested = autor.find("div", class_="autor")
        if isinstance(nested, Tag):
            cycle = clean_text(nested.get_text()) or None

        own_text = "".join(str(s) for s in autor.find_all(string=True, recursive=False))
        director = clean_text(own_text) or None
        return director, cycle

    @staticmethod
    def _sessions(card: Tag) -> list[tuple[date, str]]:
        if _NOT_ON_SALE in card.get_text():
            return []

        sessions: list[tuple[date, str]] = []
        for session in card.find_all("div", class_="session"):
            if not isinstance(session, Tag) or "plussesion" in str(session):
                continue

            date_match = _SESSION_DATE_RE.search(session.get_text(" "))
            hour = session.find("span", class_="hour")
            if not date_match or not isinstance(hour, Tag):
                continue
            time_match = _SESSION_TIME_RE.search(hour.get_text())
            if not time_match:
                continue

            day, month, short_year = (int(g) for g in date_match.groups())
            try:
                session_date = date(2000 + short_year, month, day)
            except ValueError:
                logger.warning(f"Zumzeig: invalid session date '{date_match.group(0)}'")
                continue
            sessions.append((session_date, time_match.group(1)))

        return sessions
