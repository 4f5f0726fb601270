"""File-based snapshot storage, one JSON file per source and month."""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from cinehub.schemas.movie import MonthSnapshot, MonthStats, Movie, SourceStats

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


class SnapshotStore:
    """
    Durable cache of one source's listings.

    Each month lives in ``<data_dir>/<slug>-<YYYY-MM>.json``. The store has
    no notion of expiry; deciding whether a snapshot is fresh enough is up
    to the caller.
    """

    def __init__(self, slug: str, data_dir: str | Path) -> None:
        self.slug = slug
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, month: str) -> Path:
        return self.data_dir / f"{self.slug}-{month}.json"

    def get(self, month: str) -> MonthSnapshot | None:
        """
        Load the snapshot for a month.

        Returns:
            The snapshot, or None if nothing is stored or the file is unreadable
        """
        path = self._path(month)
        if not path.exists():
            return None

        try:
            return MonthSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Error reading snapshot {path}: {e}")
            return None

    def save(self, month: str, movies: list[Movie], theater: str | None = None) -> MonthSnapshot:
        """
        Overwrite the snapshot for a month.

        Args:
            month: Month in YYYY-MM format
            movies: Movies to store
            theater: Theater display name (defaults to the slug)

        Returns:
            The snapshot that was written
        """
        snapshot = MonthSnapshot(
            month=month,
            theater=theater or self.slug,
            last_updated=datetime.now(timezone.utc),
            total_movies=len(movies),
            movies=movies,
        )
        path = self._path(month)
        path.write_text(snapshot.to_json(), encoding="utf-8")
        logger.info(f"Saved {len(movies)} movies to {path}")
        return snapshot

    def all_months(self) -> list[str]:
        """Every stored month for this source, ascending."""
        prefix = f"{self.slug}-"
        months = [
            path.stem[len(prefix):]
            for path in self.data_dir.glob(f"{prefix}*.json")
        ]
        # Slug "mooby" must not pick up "mooby-aribau-2025-11"
        return sorted(m for m in months if _MONTH_RE.match(m))

    def all_movies(self) -> list[Movie]:
        """Movies from every stored month, concatenated in month order."""
        movies: list[Movie] = []
        for month in self.all_months():
            snapshot = self.get(month)
            if snapshot:
                movies.extend(snapshot.movies)
        return movies

    def clear(self) -> None:
        """Delete every stored month for this source."""
        for month in self.all_months():
            self._path(month).unlink(missing_ok=True)
        logger.info(f"Cleared cached data for {self.slug}")

    def stats(self) -> SourceStats:
        months: list[MonthStats] = []
        total_movies = 0
        for month in self.all_months():
            snapshot = self.get(month)
            movie_count = snapshot.total_movies if snapshot else 0
            total_movies += len(snapshot.movies) if snapshot else 0
            months.append(
                MonthStats(
                    month=month,
                    movie_count=movie_count,
                    last_updated=snapshot.last_updated if snapshot else None,
                )
            )
        return SourceStats(
            total_months=len(months),
            total_movies=total_movies,
            months=months,
        )
