"""Pydantic schemas for movies, snapshots and storage statistics."""

from cinehub.schemas.movie import (
    HubStats,
    MonthSnapshot,
    MonthStats,
    Movie,
    SourceStats,
)

__all__ = [
    "HubStats",
    "MonthSnapshot",
    "MonthStats",
    "Movie",
    "SourceStats",
]
