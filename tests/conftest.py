"""Shared test fixtures."""

from collections.abc import Callable
from datetime import date
from typing import Any

import pytest

from cinehub.schemas.movie import Movie
from cinehub.storage import SnapshotStore


@pytest.fixture
def make_movie() -> Callable[..., Movie]:
    """Factory for Movie objects with sensible defaults."""

    def _make(
        title: str = "Past Lives",
        day: date = date(2025, 11, 6),
        showtimes: list[str] | None = None,
        source: str = "zumzeig",
        **fields: Any,
    ) -> Movie:
        return Movie(
            id=f"{source}_{day.isoformat()}_{title.lower().replace(' ', '-')}",
            title=title,
            theater=fields.pop("theater", "Zumzeig"),
            showtimes=showtimes if showtimes is not None else ["20:00"],
            date=day,
            source=source,
            **fields,
        )

    return _make


@pytest.fixture
def store(tmp_path) -> SnapshotStore:
    """Snapshot store in a temporary directory."""
    return SnapshotStore("zumzeig", tmp_path)
