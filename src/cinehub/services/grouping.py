"""Merge engine folding screenings into one Movie per (date, title)."""

from collections.abc import Callable, Iterable
from datetime import date

from cinehub.parsers.models import ScreeningRecord
from cinehub.schemas.movie import Movie


def merge_screenings(
    records: Iterable[ScreeningRecord],
    to_movie: Callable[[ScreeningRecord], Movie],
) -> list[Movie]:
    """
    Collapse screening records sharing (date, title) into single movies.

    The first record seen for a key decides every non-showtime field
    (alt title, director, genre, poster). Later records for the same key
    only contribute their showtime.

    Args:
        records: Screenings in parse order
        to_movie: Builds the Movie for the first record of each key

    Returns:
        Movies in first-seen order with unique, ascending showtimes
    """
    grouped: dict[tuple[date, str], Movie] = {}

    for record in records:
        key = (record.date, record.title)
        existing = grouped.get(key)
        if existing is None:
            grouped[key] = to_movie(record)
        else:
            # Assignment re-runs the showtimes validator (dedupe + sort)
            existing.showtimes = existing.showtimes + [record.time]

    return list(grouped.values())
