"""Tests for the per-source aggregation pipeline."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from cinehub.errors import FetchError, ParseStructureError
from cinehub.parsers.verdi import VerdiParser
from cinehub.parsers.zumzeig import ZumzeigParser
from cinehub.services.aggregator import SourceAggregator, fetch_page
from cinehub.storage import SnapshotStore

SESSIONS_HTML = """
<a class="film" href="/cinema/past-lives/">
  <h2 class="filmtitle">Past Lives</h2>
  <div class="autor">Celine Song</div>
  <div class="session">Dj 6.11.25 <span class="hour">20:00</span></div>
  <div class="session">Dj 6.11.25 <span class="hour">17:30</span></div>
  <div class="session">Dv 7.11.25 <span class="hour">19:00</span></div>
</a>
<a class="film" href="/cinema/flow/">
  <h2 class="filmtitle">Flow</h2>
  <div class="session">Dl 1.12.25 <span class="hour">17:00</span></div>
</a>
"""


def make_response(text: str, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=MagicMock(), response=MagicMock()
        )
    else:
        response.raise_for_status = MagicMock()
    return response


def make_async_client_ctx(get) -> AsyncMock:
    """Async context manager whose client.get is *get* (an AsyncMock)."""
    inner = AsyncMock()
    inner.get = get
    ctx = AsyncMock()
    ctx.__aenter__ = AsyncMock(return_value=inner)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def serve(pages: dict[str, str]) -> AsyncMock:
    """client.get that serves fixed pages by URL and fails for anything else."""

    async def _get(url: str):
        if url not in pages:
            raise httpx.ConnectError(f"no route to {url}")
        return make_response(pages[url])

    return AsyncMock(side_effect=_get)


def failing() -> AsyncMock:
    return AsyncMock(side_effect=httpx.ConnectError("connection refused"))


@pytest.fixture
def enricher() -> MagicMock:
    enricher = MagicMock()
    enricher.enrich_all = AsyncMock(side_effect=lambda movies: movies)
    return enricher


@pytest.fixture
def aggregator(store: SnapshotStore, enricher: MagicMock) -> SourceAggregator:
    return SourceAggregator(ZumzeigParser(), store, enricher, detail_page_delay=0)


class TestFetchPage:
    async def test_returns_text(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=make_response("<html>ok</html>"))
        assert await fetch_page(client, "https://example.com") == "<html>ok</html>"

    async def test_wraps_http_status_error(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=make_response("", status_code=503))
        with pytest.raises(FetchError) as exc_info:
            await fetch_page(client, "https://example.com")
        assert exc_info.value.url == "https://example.com"

    async def test_wraps_network_error(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        with pytest.raises(FetchError, match="timed out"):
            await fetch_page(client, "https://example.com")


class TestGetMoviesForMonth:
    async def test_refresh_parses_filters_enriches_and_saves(
        self, aggregator: SourceAggregator, store: SnapshotStore, enricher: MagicMock
    ) -> None:
        ctx = make_async_client_ctx(serve({"https://zumzeigcine.coop/cinema/sessions/": SESSIONS_HTML}))

        with patch("httpx.AsyncClient", return_value=ctx):
            movies = await aggregator.get_movies_for_month("2025-11")

        assert [(m.title, m.date, m.showtimes) for m in movies] == [
            ("Past Lives", date(2025, 11, 6), ["17:30", "20:00"]),
            ("Past Lives", date(2025, 11, 7), ["19:00"]),
        ]
        enricher.enrich_all.assert_awaited_once()
        assert store.get("2025-11").movies == movies
        assert store.get("2025-11").theater == "Zumzeig"

    async def test_cache_hit_skips_network(
        self, aggregator: SourceAggregator, store: SnapshotStore, make_movie
    ) -> None:
        cached = [make_movie()]
        store.save("2025-11", cached)

        with patch("httpx.AsyncClient") as client_cls:
            movies = await aggregator.get_movies_for_month("2025-11")

        assert movies == cached
        client_cls.assert_not_called()

    async def test_force_refresh_bypasses_cache(
        self, aggregator: SourceAggregator, store: SnapshotStore, make_movie
    ) -> None:
        store.save("2025-11", [make_movie(title="Old")])
        ctx = make_async_client_ctx(serve({"https://zumzeigcine.coop/cinema/sessions/": SESSIONS_HTML}))

        with patch("httpx.AsyncClient", return_value=ctx):
            movies = await aggregator.get_movies_for_month("2025-11", force_refresh=True)

        assert {m.title for m in movies} == {"Past Lives"}

    async def test_expired_snapshot_is_refreshed(
        self, store: SnapshotStore, enricher: MagicMock, make_movie
    ) -> None:
        aggregator = SourceAggregator(ZumzeigParser(), store, enricher, cache_max_age_hours=1)
        old = store.save("2025-11", [make_movie(title="Old")])
        old.last_updated = datetime.now(timezone.utc) - timedelta(hours=2)
        (store.data_dir / "zumzeig-2025-11.json").write_text(old.to_json())
        ctx = make_async_client_ctx(serve({"https://zumzeigcine.coop/cinema/sessions/": SESSIONS_HTML}))

        with patch("httpx.AsyncClient", return_value=ctx):
            movies = await aggregator.get_movies_for_month("2025-11")

        assert {m.title for m in movies} == {"Past Lives"}

    async def test_fresh_snapshot_within_max_age_is_used(
        self, store: SnapshotStore, enricher: MagicMock, make_movie
    ) -> None:
        aggregator = SourceAggregator(ZumzeigParser(), store, enricher, cache_max_age_hours=1)
        store.save("2025-11", [make_movie(title="Cached")])

        with patch("httpx.AsyncClient") as client_cls:
            movies = await aggregator.get_movies_for_month("2025-11")

        assert [m.title for m in movies] == ["Cached"]
        client_cls.assert_not_called()

    async def test_stale_snapshot_served_on_fetch_error(
        self, aggregator: SourceAggregator, store: SnapshotStore, make_movie
    ) -> None:
        stale = [make_movie(title="Stale")]
        store.save("2025-11", stale)

        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(failing())):
            movies = await aggregator.get_movies_for_month("2025-11", force_refresh=True)

        assert movies == stale

    async def test_fetch_error_without_cache_propagates(self, aggregator: SourceAggregator) -> None:
        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(failing())):
            with pytest.raises(FetchError):
                await aggregator.get_movies_for_month("2025-11")

    async def test_structure_error_without_cache_propagates(
        self, aggregator: SourceAggregator, store: SnapshotStore
    ) -> None:
        ctx = make_async_client_ctx(serve({"https://zumzeigcine.coop/cinema/sessions/": "<p>redesign</p>"}))

        with patch("httpx.AsyncClient", return_value=ctx):
            with pytest.raises(ParseStructureError):
                await aggregator.get_movies_for_month("2025-11")

        assert store.get("2025-11") is None

    async def test_concurrent_misses_fetch_once(self, aggregator: SourceAggregator) -> None:
        get = serve({"https://zumzeigcine.coop/cinema/sessions/": SESSIONS_HTML})

        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(get)):
            first, second = await asyncio.gather(
                aggregator.get_movies_for_month("2025-11"),
                aggregator.get_movies_for_month("2025-11"),
            )

        assert get.await_count == 1
        assert first == second
        assert len(first) == 2

    async def test_undecodable_snapshot_is_refreshed(
        self, aggregator: SourceAggregator, store: SnapshotStore
    ) -> None:
        (store.data_dir / "zumzeig-2025-11.json").write_bytes(b"\xff\xfe garbage")
        ctx = make_async_client_ctx(serve({"https://zumzeigcine.coop/cinema/sessions/": SESSIONS_HTML}))

        with patch("httpx.AsyncClient", return_value=ctx):
            movies = await aggregator.get_movies_for_month("2025-11")

        assert {m.title for m in movies} == {"Past Lives"}
        assert store.get("2025-11").movies == movies

    async def test_rejects_malformed_month(self, aggregator: SourceAggregator) -> None:
        with pytest.raises(ValueError):
            await aggregator.get_movies_for_month("2025-13")

    async def test_empty_month_is_saved(self, aggregator: SourceAggregator, store: SnapshotStore) -> None:
        ctx = make_async_client_ctx(serve({"https://zumzeigcine.coop/cinema/sessions/": SESSIONS_HTML}))

        with patch("httpx.AsyncClient", return_value=ctx):
            movies = await aggregator.get_movies_for_month("2026-02")

        assert movies == []
        assert store.get("2026-02").total_movies == 0


class TestGetMoviesForDate:
    async def test_date_query_matches_filtered_month(
        self, aggregator: SourceAggregator, store: SnapshotStore, make_movie
    ) -> None:
        store.save(
            "2025-11",
            [make_movie(day=date(2025, 11, 6)), make_movie(title="Anora", day=date(2025, 11, 7))],
        )

        by_date = await aggregator.get_movies_for_date(date(2025, 11, 7))
        by_month = await aggregator.get_movies_for_month("2025-11")

        assert by_date == [m for m in by_month if m.date == date(2025, 11, 7)]
        assert [m.title for m in by_date] == ["Anora"]

    async def test_date_without_screenings(
        self, aggregator: SourceAggregator, store: SnapshotStore, make_movie
    ) -> None:
        store.save("2025-11", [make_movie()])
        assert await aggregator.get_movies_for_date(date(2025, 11, 30)) == []


class TestDetailPages:
    LISTING = """
    <h2><a href="/past-lives">Past Lives</a></h2>
    <h2><a href="/broken">Broken</a></h2>
    <h2><a href="/anora">Anora</a></h2>
    """

    PAGES = {
        "https://barcelona.cines-verdi.com/cartelera": LISTING,
        "https://barcelona.cines-verdi.com/past-lives": (
            '<h1>Past Lives</h1><a title="20251106 17:30">17:30</a><a title="20251106 20:00">20:00</a>'
        ),
        "https://barcelona.cines-verdi.com/anora": (
            '<h1>Anora</h1><a title="20251107 21:00">21:00</a><a title="20251201 18:00">18:00</a>'
        ),
    }

    async def test_failed_detail_page_is_skipped(
        self, tmp_path, enricher: MagicMock
    ) -> None:
        aggregator = SourceAggregator(
            VerdiParser(), SnapshotStore("verdi", tmp_path), enricher, detail_page_delay=0
        )
        ctx = make_async_client_ctx(serve(self.PAGES))

        with patch("httpx.AsyncClient", return_value=ctx):
            movies = await aggregator.get_movies_for_month("2025-11")

        assert [(m.title, m.date, m.showtimes) for m in movies] == [
            ("Past Lives", date(2025, 11, 6), ["17:30", "20:00"]),
            ("Anora", date(2025, 11, 7), ["21:00"]),
        ]
        assert movies[0].film_url == "https://barcelona.cines-verdi.com/past-lives"

    async def test_pauses_between_detail_pages(self, tmp_path, enricher: MagicMock) -> None:
        aggregator = SourceAggregator(
            VerdiParser(), SnapshotStore("verdi", tmp_path), enricher, detail_page_delay=0.2
        )
        ctx = make_async_client_ctx(serve(self.PAGES))

        with (
            patch("httpx.AsyncClient", return_value=ctx),
            patch("cinehub.services.aggregator.asyncio.sleep", new_callable=AsyncMock) as sleep,
        ):
            await aggregator.get_movies_for_month("2025-11")

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.2)

    async def test_listing_failure_propagates(self, tmp_path, enricher: MagicMock) -> None:
        aggregator = SourceAggregator(VerdiParser(), SnapshotStore("verdi", tmp_path), enricher)

        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(failing())):
            with pytest.raises(FetchError):
                await aggregator.get_movies_for_month("2025-11")


class TestCacheManagement:
    def test_get_all_movies_and_stats(self, aggregator: SourceAggregator, store: SnapshotStore, make_movie) -> None:
        store.save("2025-11", [make_movie()])
        store.save("2025-12", [make_movie(day=date(2025, 12, 1))])

        assert len(aggregator.get_all_movies()) == 2
        assert aggregator.stats().total_months == 2

    def test_clear_cache(self, aggregator: SourceAggregator, store: SnapshotStore, make_movie) -> None:
        store.save("2025-11", [make_movie()])
        aggregator.clear_cache()
        assert aggregator.get_all_movies() == []
