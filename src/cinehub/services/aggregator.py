"""Per-source aggregation: fetch, parse, merge, filter, enrich and cache."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone

import httpx

from cinehub.errors import FetchError
from cinehub.parsers.base import BaseParser, DetailPageParser
from cinehub.parsers.models import ScreeningRecord
from cinehub.schemas.movie import MonthSnapshot, Movie, SourceStats
from cinehub.services.enrichment import MovieEnricher
from cinehub.storage import SnapshotStore
from cinehub.utils.dates import month_of, parse_month

logger = logging.getLogger(__name__)


async def fetch_page(client: httpx.AsyncClient, url: str) -> str:
    """
    Download a page as text.

    Raises:
        FetchError: On network errors, timeouts and non-2xx responses
    """
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FetchError(url, str(e) or type(e).__name__) from e
    return response.text


class SourceAggregator:
    """
    Serves one theater's listings by month, backed by a snapshot cache.

    A month request is answered from the cache when possible. Otherwise the
    theater site is scraped, the screenings are merged, limited to the
    month, enriched and persisted. If scraping fails, any existing snapshot
    for the month is served instead; only without one does the error reach
    the caller.
    """

    def __init__(
        self,
        parser: BaseParser,
        store: SnapshotStore,
        enricher: MovieEnricher,
        *,
        timeout: float = 30,
        detail_page_delay: float = 0.2,
        cache_max_age_hours: float | None = None,
    ) -> None:
        """
        Initialize aggregator.

        Args:
            parser: Parser for this theater's pages
            store: Snapshot store keyed by this theater's slug
            enricher: Metadata enricher
            timeout: Per-request timeout in seconds
            detail_page_delay: Seconds between detail-page fetches
            cache_max_age_hours: Treat older snapshots as a cache miss (None
                means snapshots never expire)
        """
        self.parser = parser
        self.store = store
        self.enricher = enricher
        self.timeout = timeout
        self.detail_page_delay = detail_page_delay
        self.cache_max_age_hours = cache_max_age_hours
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def slug(self) -> str:
        return self.parser.slug

    async def get_movies_for_month(self, month: str, force_refresh: bool = False) -> list[Movie]:
        """
        Get every movie for a month.

        Args:
            month: Month in YYYY-MM format
            force_refresh: Scrape even if a snapshot exists

        Returns:
            Movies for the month

        Raises:
            ValueError: If the month is malformed
            FetchError, ParseStructureError: If scraping fails and nothing is cached
        """
        parse_month(month)

        # Concurrent refreshes of the same month wait for the first one
        lock = self._locks.get(month)
        if lock is None:
            lock = self._locks[month] = asyncio.Lock()
        async with lock:
            if not force_refresh:
                cached = self.store.get(month)
                if cached and self._is_fresh(cached):
                    logger.info(f"Using cached {self.parser.theater} data for {month}")
                    return cached.movies

            try:
                return await self._refresh(month)
            except Exception as e:
                logger.error(f"Error fetching {self.parser.theater} data for {month}: {e}")

                stale = self.store.get(month)
                if stale:
                    logger.info(f"Returning stale cached {self.parser.theater} data due to error")
                    return stale.movies
                raise

    async def get_movies_for_date(self, day: date, force_refresh: bool = False) -> list[Movie]:
        """Get movies for one date; always goes through the whole month."""
        movies = await self.get_movies_for_month(month_of(day), force_refresh)
        return [movie for movie in movies if movie.date == day]

    def get_all_movies(self) -> list[Movie]:
        """Every movie in every cached month."""
        return self.store.all_movies()

    def clear_cache(self) -> None:
        self.store.clear()

    def stats(self) -> SourceStats:
        return self.store.stats()

    def _is_fresh(self, snapshot: MonthSnapshot) -> bool:
        if self.cache_max_age_hours is None:
            return True
        last_updated = snapshot.last_updated
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        age = datetime.now(timezone.utc) - last_updated
        return age < timedelta(hours=self.cache_max_age_hours)

    async def _refresh(self, month: str) -> list[Movie]:
        logger.info(f"Fetching fresh data for {month} from {self.parser.theater}...")

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            if isinstance(self.parser, DetailPageParser):
                records = await self._collect_detail_pages(client, self.parser, month)
            else:
                payload = await fetch_page(client, self.parser.listing_url(month))
                records = self.parser.parse(payload, month)

        movies = self.parser.group(records)

        # Most sources list everything ahead, not just this month
        movies = [movie for movie in movies if month_of(movie.date) == month]

        movies = await self.enricher.enrich_all(movies)

        self.store.save(month, movies, self.parser.theater)
        logger.info(f"Parsed and enriched {len(movies)} {self.parser.theater} movies for {month}")
        return movies

    async def _collect_detail_pages(
        self,
        client: httpx.AsyncClient,
        parser: DetailPageParser,
        month: str,
    ) -> list[ScreeningRecord]:
        """Fetch the listing, then each detail page in turn."""
        listing = await fetch_page(client, parser.listing_url(month))
        urls = parser.extract_detail_urls(listing)
        logger.info(f"{parser.theater}: found {len(urls)} movies, fetching details...")

        records: list[ScreeningRecord] = []
        for index, url in enumerate(urls):
            if index and self.detail_page_delay > 0:
                # Be nice to the theater's server
                await asyncio.sleep(self.detail_page_delay)
            try:
                html = await fetch_page(client, url)
                records.extend(parser.parse(html, month, page_url=url))
            except Exception as e:
                logger.warning(f"{parser.theater}: skipping {url}: {e}")

        return records
