"""Refresh or inspect cached cinema listings from the command line."""

import argparse
import asyncio
import logging
import sys
from datetime import date

from cinehub.config import settings
from cinehub.errors import CineHubError
from cinehub.schemas.movie import HubStats, Movie
from cinehub.services.hub import CinemaHub, build_hub
from cinehub.utils.dates import current_month, parse_month

logger = logging.getLogger(__name__)


def _month_arg(value: str) -> str:
    try:
        parse_month(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
    return value


def format_movie(movie: Movie) -> str:
    times = " ".join(movie.showtimes) or "--:--"
    director = f" ({movie.director})" if movie.director else ""
    return f"  {movie.date}  {times:<20} {movie.title}{director}  [{movie.theater}]"


def format_stats(stats: HubStats) -> list[str]:
    lines = [f"Cached: {stats.total_months} month file(s), {stats.total_movies} movies"]
    for slug, source_stats in stats.sources.items():
        lines.append(f"  {slug:<15} {source_stats.total_movies:>5} movies")
        for month_stats in source_stats.months:
            updated = month_stats.last_updated.isoformat() if month_stats.last_updated else "-"
            lines.append(f"    {month_stats.month}  {month_stats.movie_count:>5}  {updated}")
    return lines


async def run(
    hub: CinemaHub,
    month: str | None,
    day: date | None,
    force: bool,
) -> list[Movie]:
    """Run a date or month query (current month by default)."""
    if day is not None:
        return await hub.get_movies_for_date(day, force_refresh=force)
    return await hub.get_movies_for_month(month or current_month(), force_refresh=force)


def main() -> None:
    parser = argparse.ArgumentParser(description="Fetch and cache Barcelona cinema listings.")
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--month",
        type=_month_arg,
        metavar="YYYY-MM",
        help="Month to fetch (default: current month)",
    )
    target.add_argument(
        "--date",
        type=date.fromisoformat,
        metavar="YYYY-MM-DD",
        help="Single date to fetch",
    )
    parser.add_argument("--force", action="store_true", help="Ignore cached snapshots")
    parser.add_argument(
        "--source",
        action="append",
        metavar="SLUG",
        help="Only query this source (repeatable, default: all enabled sources)",
    )
    parser.add_argument("--stats", action="store_true", help="Print cache statistics and exit")
    parser.add_argument("--clear-cache", action="store_true", help="Delete cached snapshots and exit")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    hub = build_hub(settings, sources=args.source)

    if args.clear_cache:
        hub.clear_cache()
        print("Cache cleared.")
        return

    if args.stats:
        print("\n".join(format_stats(hub.stats())))
        return

    try:
        movies = asyncio.run(run(hub, args.month, args.date, args.force))
    except (CineHubError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    for movie in movies:
        print(format_movie(movie))
    print(f"\n{len(movies)} movies.")


if __name__ == "__main__":
    main()
