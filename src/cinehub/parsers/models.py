"""Data models for parsers."""

import re
from dataclasses import dataclass, field
from datetime import date

from cinehub.errors import RecordParseError

_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


@dataclass
class ScreeningRecord:
    """
    One screening as emitted by a parser, before merging.

    Records only live for one aggregation pass; the merge engine folds them
    into Movie objects keyed by (date, title).
    """

    title: str  # Title exactly as listed; part of the merge key
    date: date
    time: str  # Zero-padded 24-hour "HH:MM"
    source_id: str  # Source tag of the parser that produced the record
    alt_title: str | None = None
    raw_director: str | None = None
    source_url: str | None = None  # The movie's own page on the theater site
    genre: list[str] = field(default_factory=list)
    poster: str | None = None
    cycle: str | None = None
    guests: str | None = None

    def __post_init__(self) -> None:
        """Reject fragments that cannot become a valid Movie."""
        if not self.title or not self.title.strip():
            raise RecordParseError("screening has no title")
        if not _TIME_RE.match(self.time):
            raise RecordParseError(f"invalid showtime {self.time!r} for '{self.title}'")
