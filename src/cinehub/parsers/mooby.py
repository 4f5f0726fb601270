"""Mooby Cinemas parser using the shops JSON embedded in the homepage."""

import json
import logging
import re
from datetime import datetime
from typing import Any

from cinehub.errors import ParseStructureError
from cinehub.parsers.base import BaseParser
from cinehub.parsers.models import ScreeningRecord
from cinehub.utils.text import clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.moobycinemas.com"

_SHOPS_MARKER_RE = re.compile(r"window\.shops\s*=\s*")


class MoobyParser(BaseParser):
    """
    Parser for the Mooby Cinemas chain.

    The homepage embeds every venue's programme as a JavaScript
    ``window.shops = {...};`` assignment keyed by shop id, so no JS
    rendering is needed. One parser instance handles one venue, selected
    by its shop code (e.g. ``BAL-ARIBAU``). Performance times are packed
    as ``YYYYMMDDHHMMSS`` strings.

    Events have no page of their own, so records carry no source URL and
    the poster fallback is skipped for them.
    """

    base_url = BASE_URL

    def __init__(self, theater_code: str, theater_name: str, slug: str) -> None:
        """
        Initialize parser for one Mooby venue.

        Args:
            theater_code: Shop code in the embedded data (e.g. "BAL-ARIBAU")
            theater_name: Display name (e.g. "Mooby Aribau")
            slug: Cache key (e.g. "mooby-aribau")
        """
        self.theater_code = theater_code
        self.theater = theater_name
        self.slug = slug
        self.source = f"mooby_{theater_code.lower()}"

    def parse(self, payload: str, month: str | None = None) -> list[ScreeningRecord]:
        shops = self._extract_shops(payload)

        shop = self._find_shop(shops)
        if shop is None:
            logger.warning(f"Mooby: shop {self.theater_code} not found in shops data")
            return []

        events = shop.get("events") or []
        logger.debug(f"{self.theater}: {len(events)} events in shops data")

        records: list[ScreeningRecord] = []
        for event in events:
            try:
                records.extend(self._parse_event(event))
            except Exception as e:
                logger.warning(f"{self.theater}: failed to parse event: {e}")
        return records

    def _extract_shops(self, payload: str) -> Any:
        """Decode the ``window.shops`` object from the page HTML."""
        marker = _SHOPS_MARKER_RE.search(payload)
        if not marker:
            raise ParseStructureError("Mooby: could not find window.shops data")

        # raw_decode parses exactly one JSON value regardless of what follows
        try:
            shops, _ = json.JSONDecoder().raw_decode(payload, marker.end())
        except json.JSONDecodeError as e:
            raise ParseStructureError(f"Mooby: failed to parse shops JSON: {e}") from e

        if not isinstance(shops, (dict, list)):
            raise ParseStructureError("Mooby: shops data is not an object")
        return shops

    def _find_shop(self, shops: Any) -> dict[str, Any] | None:
        candidates = shops.values() if isinstance(shops, dict) else shops
        for shop in candidates:
            if isinstance(shop, dict) and shop.get("code") == self.theater_code:
                return shop
        return None

    def _parse_event(self, event: dict[str, Any]) -> list[ScreeningRecord]:
        title = clean_text(str(event.get("locale_title") or event.get("name") or ""))
        if not title:
            return []

        records: list[ScreeningRecord] = []
        for perf in event.get("performances") or []:
            if not isinstance(perf, dict):
                continue
            parsed = self._parse_showtime(str(perf.get("time") or ""))
            if parsed is None:
                logger.warning(f"{self.theater}: bad performance time {perf.get('time')!r}")
                continue

            records.append(
                ScreeningRecord(
                    title=title,
                    date=parsed.date(),
                    time=parsed.strftime("%H:%M"),
                    source_id=self.source,
                )
            )
        return records

    @staticmethod
    def _parse_showtime(value: str) -> datetime | None:
        """Parse "20251106173000" (seconds optional) into a datetime."""
        if len(value) < 12:
            return None
        try:
            return datetime.strptime(value[:12], "%Y%m%d%H%M")
        except ValueError:
            return None
