"""Cross-source queries fanning out to every configured theater."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import date

from cinehub.config import Settings, settings as default_settings
from cinehub.errors import AggregationError
from cinehub.schemas.movie import HubStats, Movie
from cinehub.services.aggregator import SourceAggregator
from cinehub.services.enrichment import MovieEnricher
from cinehub.services.tmdb_client import TMDbClient
from cinehub.sources import get_parser
from cinehub.storage import SnapshotStore
from cinehub.utils.dates import current_month, month_of

logger = logging.getLogger(__name__)


def sort_movies(movies: Iterable[Movie]) -> list[Movie]:
    """Sort by date, then by earliest showtime ("00:00" when there is none)."""
    return sorted(movies, key=lambda m: (m.date, m.first_showtime))


class CinemaHub:
    """
    Combined view over every configured theater.

    Each source is queried concurrently and is its own failure domain: a
    source that errors is logged and left out, the others still answer.
    The query only fails when every source does.
    """

    def __init__(self, aggregators: list[SourceAggregator]) -> None:
        self.aggregators = aggregators

    async def _gather(
        self, query: Callable[[SourceAggregator], Awaitable[list[Movie]]]
    ) -> list[Movie]:
        results = await asyncio.gather(
            *(query(aggregator) for aggregator in self.aggregators),
            return_exceptions=True,
        )

        movies: list[Movie] = []
        errors: dict[str, BaseException] = {}
        for aggregator, result in zip(self.aggregators, results):
            if isinstance(result, BaseException):
                logger.error(f"{aggregator.parser.theater} query failed: {result}")
                errors[aggregator.slug] = result
                continue
            movies.extend(result)

        if self.aggregators and len(errors) == len(self.aggregators):
            raise AggregationError(errors)

        return sort_movies(movies)

    async def get_movies_for_month(self, month: str, force_refresh: bool = False) -> list[Movie]:
        return await self._gather(lambda a: a.get_movies_for_month(month, force_refresh))

    async def get_movies_for_date(self, day: date, force_refresh: bool = False) -> list[Movie]:
        return await self._gather(lambda a: a.get_movies_for_date(day, force_refresh))

    def get_all_movies(self) -> list[Movie]:
        movies: list[Movie] = []
        for aggregator in self.aggregators:
            movies.extend(aggregator.get_all_movies())
        return sort_movies(movies)

    async def refresh(self, month: str | None = None, day: date | None = None) -> list[Movie]:
        """
        Force a re-scrape of every source.

        Refreshes the month containing *day* when given, else *month*, else
        the current month. Returns the day's movies when a day was given.
        """
        if day is not None:
            month = month_of(day)
        month = month or current_month()

        movies = await self.get_movies_for_month(month, force_refresh=True)
        if day is not None:
            return [movie for movie in movies if movie.date == day]
        return movies

    def clear_cache(self) -> None:
        for aggregator in self.aggregators:
            aggregator.clear_cache()
        logger.info("Cache cleared for all theaters")

    def stats(self) -> HubStats:
        per_source = {aggregator.slug: aggregator.stats() for aggregator in self.aggregators}
        return HubStats(
            sources=per_source,
            total_months=sum(s.total_months for s in per_source.values()),
            total_movies=sum(s.total_movies for s in per_source.values()),
        )


def build_hub(
    config: Settings | None = None,
    sources: list[str] | None = None,
) -> CinemaHub:
    """
    Wire parsers, stores and the enricher from settings.

    Args:
        config: Settings to use (defaults to the global settings)
        sources: Source slugs to include (defaults to config.enabled_sources)

    Returns:
        Hub over the requested sources; unknown slugs are logged and skipped
    """
    config = config or default_settings

    tmdb_client = TMDbClient(
        config.tmdb_api_key,
        base_url=config.tmdb_base_url,
        image_base_url=config.tmdb_image_base_url,
        timeout=config.scrape_timeout,
    )
    enricher = MovieEnricher(
        tmdb_client,
        delay=config.enrichment_delay,
        poster_size=config.tmdb_poster_size,
        timeout=config.scrape_timeout,
    )

    aggregators: list[SourceAggregator] = []
    for slug in sources or config.enabled_sources:
        parser = get_parser(slug)
        if not parser:
            logger.warning(f"No parser found for source '{slug}'")
            continue
        aggregators.append(
            SourceAggregator(
                parser,
                SnapshotStore(parser.slug, config.data_dir),
                enricher,
                timeout=config.scrape_timeout,
                detail_page_delay=config.detail_page_delay,
                cache_max_age_hours=config.cache_max_age_hours,
            )
        )

    return CinemaHub(aggregators)
