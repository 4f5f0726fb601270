"""Base parser interface for all theater sources."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from cinehub.parsers.models import ScreeningRecord
from cinehub.schemas.movie import Movie
from cinehub.services.grouping import merge_screenings
from cinehub.utils.text import slugify


class BaseParser(ABC):
    """
    Abstract base class for all theater parsers.

    A parser only turns page text into screening records; fetching,
    pacing and caching belong to the aggregator. Subclasses set the class
    attributes and implement parse.
    """

    source: str  # Tag written to Movie.source
    slug: str  # Cache key for the snapshot store
    theater: str  # Display name
    base_url: str
    default_genre: str = "Cinema"

    def listing_url(self, month: str) -> str:
        """
        URL of the page listing the given month.

        Most sources publish one forward-looking listing regardless of the
        month, so the default ignores it.
        """
        return self.base_url

    @abstractmethod
    def parse(self, payload: str, month: str | None = None) -> list[ScreeningRecord]:
        """
        Extract screening records from a page.

        Args:
            payload: Raw page text
            month: "YYYY-MM" context for sources whose day markup omits the
                year and month

        Returns:
            Screenings found on the page. Malformed fragments are skipped.

        Raises:
            ParseStructureError: If the page's data block is missing entirely
        """

    def movie_id(self, record: ScreeningRecord) -> str:
        """Deterministic id from source, date and title slug."""
        return f"{self.source}_{record.date.isoformat()}_{slugify(record.title)}"

    def format(self, record: ScreeningRecord) -> Movie:
        """Build the normalized Movie for a single screening."""
        return Movie(
            id=self.movie_id(record),
            title=record.title,
            alt_title=record.alt_title or None,
            director=record.raw_director or None,
            genre=record.genre or [self.default_genre],
            poster=record.poster or None,
            theater=self.theater,
            showtimes=[record.time],
            date=record.date,
            source=self.source,
            film_url=record.source_url,
            cycle=record.cycle or None,
            guests=record.guests or None,
        )

    def group(self, records: Iterable[ScreeningRecord]) -> list[Movie]:
        """Merge records into one Movie per (date, title)."""
        return merge_screenings(records, self.format)


class DetailPageParser(BaseParser):
    """
    Parser for sources that need two-phase extraction.

    The listing page only yields links to per-movie detail pages; each
    detail page carries that movie's date -> showtimes mapping.
    """

    @abstractmethod
    def extract_detail_urls(self, listing_html: str) -> list[str]:
        """
        Return absolute detail-page URLs in listing order, without duplicates.

        Raises:
            ParseStructureError: If the listing contains no movie links at all
        """

    @abstractmethod
    def parse(
        self,
        payload: str,
        month: str | None = None,
        page_url: str | None = None,
    ) -> list[ScreeningRecord]:
        """Extract screenings from one detail page."""
