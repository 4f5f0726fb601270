"""TMDb API client for fetching film metadata."""

import logging
from typing import Any

import httpx

from cinehub.errors import EnrichmentError

logger = logging.getLogger(__name__)


class TMDbClient:
    """Client for The Movie Database (TMDb) API."""

    BASE_URL = "https://api.themoviedb.org/3"
    IMAGE_BASE_URL = "https://image.tmdb.org/t/p"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        image_base_url: str | None = None,
        timeout: float = 30,
    ) -> None:
        """
        Initialize TMDb client.

        Args:
            api_key: TMDb API key; an empty key disables the client
            base_url: API root (defaults to the public v3 API)
            image_base_url: Image CDN root used to build poster URLs
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.image_base_url = (image_base_url or self.IMAGE_BASE_URL).rstrip("/")
        self.timeout = timeout
        if not self.api_key:
            logger.warning("TMDb API key not configured, movie metadata will not be fetched")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET an API path, raising EnrichmentError on any failure."""
        if not self.api_key:
            raise EnrichmentError("TMDb API key not configured")

        query: dict[str, Any] = {"api_key": self.api_key, **(params or {})}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}{path}", params=query)
                response.raise_for_status()
                return response.json()
        except Exception as e:
            raise EnrichmentError(f"TMDb request {path} failed: {e}") from e

    async def search_film(self, title: str, year: int | None = None) -> dict[str, Any] | None:
        """
        Search for a film by title.

        Args:
            title: Film title (already cleaned for search)
            year: Release year (optional, helps narrow results)

        Returns:
            First matching film result or None if not found

        Raises:
            EnrichmentError: If the request fails
        """
        params: dict[str, Any] = {"query": title}
        if year:
            params["year"] = year

        data = await self._get("/search/movie", params)
        results = data.get("results", [])
        if not results:
            logger.info(f"No TMDb results for: {title}")
            return None

        # The first result is the most relevant
        return results[0]

    async def get_film_details(self, tmdb_id: int) -> dict[str, Any]:
        """
        Get detailed film information (runtime, genres, ...).

        Raises:
            EnrichmentError: If the request fails
        """
        return await self._get(f"/movie/{tmdb_id}")

    async def get_film_credits(self, tmdb_id: int) -> dict[str, Any]:
        """
        Get cast and crew for a film.

        Raises:
            EnrichmentError: If the request fails
        """
        return await self._get(f"/movie/{tmdb_id}/credits")

    def extract_directors(self, credits: dict[str, Any]) -> list[str]:
        """
        Extract director names from TMDb credits.

        Args:
            credits: TMDb credits data

        Returns:
            List of director names
        """
        crew = credits.get("crew", [])
        directors = [
            person["name"] for person in crew if person.get("job") == "Director" and person.get("name")
        ]
        return directors

    def poster_url(self, poster_path: str | None, size: str = "w500") -> str | None:
        """
        Build a full poster URL from a TMDb poster path.

        Sizes: w92, w154, w185, w342, w500, w780, original
        """
        if not poster_path:
            return None
        return f"{self.image_base_url}/{size}{poster_path}"
