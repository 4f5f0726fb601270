"""Pydantic schemas for normalized movies and cached month snapshots."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, as stored in snapshot files."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Movie(CamelModel):
    """One film on one date at one theater, with all its showtimes."""

    id: str
    title: str
    alt_title: str | None = None
    director: str | None = None
    duration: int | None = None  # minutes
    genre: list[str] = Field(default_factory=list)
    rating: str | None = None  # e.g. "7.4/10"
    poster: str | None = None
    theater: str
    showtimes: list[str] = Field(default_factory=list)  # "HH:MM", unique, ascending
    date: date
    source: str
    film_url: str | None = None
    cycle: str | None = None  # festival or series the screening belongs to
    guests: str | None = None

    # TMDb enrichment
    plot: str | None = None
    tmdb_id: int | None = None
    original_title: str | None = None
    release_year: int | None = None

    @field_validator("showtimes")
    @classmethod
    def _unique_sorted(cls, value: list[str]) -> list[str]:
        # Zero-padded HH:MM sorts chronologically as plain strings
        return sorted(set(value))

    @property
    def first_showtime(self) -> str:
        return self.showtimes[0] if self.showtimes else "00:00"


class MonthSnapshot(CamelModel):
    """Cached listing of one source for one month."""

    month: str  # YYYY-MM
    theater: str
    last_updated: datetime
    total_movies: int
    movies: list[Movie]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class MonthStats(CamelModel):
    month: str
    movie_count: int
    last_updated: datetime | None = None


class SourceStats(CamelModel):
    """Storage statistics for one source."""

    total_months: int
    total_movies: int
    months: list[MonthStats]


class HubStats(CamelModel):
    """Storage statistics across every configured source."""

    sources: dict[str, SourceStats]
    total_months: int
    total_movies: int
