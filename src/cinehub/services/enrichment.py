"""Movie enrichment with TMDb metadata and a poster-scraping fallback."""

import asyncio
import logging
from typing import Any
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from cinehub.errors import EnrichmentError
from cinehub.schemas.movie import Movie
from cinehub.services.tmdb_client import TMDbClient
from cinehub.utils.text import clean_search_title

logger = logging.getLogger(__name__)

# Social-sharing meta tags that usually point at the film's poster or still
_POSTER_META_TAGS: list[dict[str, str]] = [
    {"property": "og:image"},
    {"name": "twitter:image"},
    {"property": "og:image:url"},
]


class MovieEnricher:
    """
    Adds poster, runtime, director and rating to scraped movies.

    Uses a multi-stage lookup:
    1. Search TMDb by cleaned title and take the first result
    2. Fetch details and credits for the hit concurrently
    3. Without a hit (or without an API key), scrape a poster from the
       movie's own page on the theater site

    Enrichment never fails a batch: any error leaves the movie as scraped.
    """

    def __init__(
        self,
        tmdb_client: TMDbClient,
        *,
        delay: float = 0.25,
        poster_size: str = "w500",
        timeout: float = 30,
    ) -> None:
        """
        Initialize enricher.

        Args:
            tmdb_client: TMDb client; a client without API key disables lookups
            delay: Seconds to wait between movies, keeping under the TMDb quota
            poster_size: TMDb image size for poster URLs
            timeout: Timeout for poster page fetches
        """
        self.tmdb_client = tmdb_client
        self.delay = delay
        self.poster_size = poster_size
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.tmdb_client.enabled

    async def enrich_all(self, movies: list[Movie]) -> list[Movie]:
        """
        Enrich movies one at a time with a fixed pause between them.

        TMDb allows roughly 40 requests per 10 seconds and every hit costs
        three requests.
        """
        if not self.enabled:
            logger.info("TMDb disabled, skipping metadata lookup (posters only)")
        logger.info(f"Enriching {len(movies)} movies...")

        enriched: list[Movie] = []
        for index, movie in enumerate(movies):
            if index and self.delay > 0:
                await asyncio.sleep(self.delay)
            enriched.append(await self.enrich(movie))

        with_metadata = sum(1 for m in enriched if m.poster or m.duration)
        logger.info(f"Enriched {with_metadata}/{len(movies)} movies")
        return enriched

    async def enrich(self, movie: Movie) -> Movie:
        """
        Enrich a single movie.

        Returns:
            An updated copy, or the original movie (possibly with a scraped
            poster) when there is no TMDb match or anything fails
        """
        try:
            if not self.enabled:
                return await self._with_scraped_poster(movie)

            query = clean_search_title(movie.title)
            if not query:
                return await self._with_scraped_poster(movie)

            try:
                hit = await self.tmdb_client.search_film(query, movie.release_year)
            except EnrichmentError as e:
                logger.warning(f"TMDb search failed for '{movie.title}': {e}")
                hit = None

            if hit is None:
                return await self._with_scraped_poster(movie)

            return await self._apply_hit(movie, hit)

        except Exception as e:
            logger.error(f"Error enriching movie '{movie.title}': {e}", exc_info=True)
            return movie

    async def _apply_hit(self, movie: Movie, hit: dict[str, Any]) -> Movie:
        tmdb_id = hit["id"]
        details, credits = await asyncio.gather(
            self.tmdb_client.get_film_details(tmdb_id),
            self.tmdb_client.get_film_credits(tmdb_id),
            return_exceptions=True,
        )
        if isinstance(details, BaseException):
            logger.warning(f"TMDb details failed for '{movie.title}': {details}")
            details = {}
        if isinstance(credits, BaseException):
            logger.warning(f"TMDb credits failed for '{movie.title}': {credits}")
            credits = {}

        director = movie.director
        directors = self.tmdb_client.extract_directors(credits)
        if directors:
            director = ", ".join(directors)

        poster = self.tmdb_client.poster_url(hit.get("poster_path"), self.poster_size)
        if not poster:
            poster = movie.poster or await self._scrape_for(movie)

        vote_average = hit.get("vote_average")
        rating = f"{vote_average:g}/10" if vote_average else movie.rating

        return movie.model_copy(
            update={
                "director": director,
                "duration": details.get("runtime") or movie.duration,
                "poster": poster,
                "rating": rating,
                "plot": hit.get("overview") or None,
                "tmdb_id": tmdb_id,
                "original_title": hit.get("original_title") or movie.title,
                "release_year": self._extract_year(hit.get("release_date")),
            }
        )

    async def _with_scraped_poster(self, movie: Movie) -> Movie:
        if movie.poster:
            return movie
        poster = await self._scrape_for(movie)
        return movie.model_copy(update={"poster": poster}) if poster else movie

    async def _scrape_for(self, movie: Movie) -> str | None:
        if not movie.film_url:
            return None
        return await self.scrape_poster(movie.film_url)

    async def scrape_poster(self, url: str) -> str | None:
        """
        Extract a poster image from a movie page on the theater site.

        Checks Open Graph / Twitter image meta tags first, then any <img>
        with "poster" in its class. Relative URLs resolve against the page.

        Returns:
            Absolute poster URL or None
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                html = response.text
        except Exception as e:
            logger.warning(f"Error fetching poster page {url}: {e}")
            return None

        soup = BeautifulSoup(html, "html.parser")
        for attrs in _POSTER_META_TAGS:
            meta = soup.find("meta", attrs=attrs)
            if isinstance(meta, Tag) and meta.get("content"):
                return urljoin(url, str(meta["content"]))

        img = soup.find("img", class_=lambda c: c is not None and "poster" in c, src=True)
        if isinstance(img, Tag):
            return urljoin(url, str(img["src"]))

        return None

    @staticmethod
    def _extract_year(release_date: str | None) -> int | None:
        """Extract year from TMDb release date string."""
        if not release_date:
            return None
        try:
            return int(release_date[:4])
        except (ValueError, IndexError):
            return None
