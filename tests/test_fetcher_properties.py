"""
Tests for the page fetch adapters.

The httpx adapter runs against httpx.MockTransport; the Playwright adapter
is only constructed, never launched.
"""

import asyncio
from pathlib import Path

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from adblock_cleaner.config import CleanerConfig
from adblock_cleaner.enums import ErrorKind, FetchEngine
from adblock_cleaner.exceptions import FetcherStartupError, FetchError
from adblock_cleaner.fetcher import HttpxFetcher, PlaywrightFetcher, create_fetcher

from fakes import FakeFetcher


def fetch_with(handler, url: str = "https://site.example"):
    """Open one page on an httpx fetcher backed by ``handler`` and navigate."""

    async def go():
        fetcher = HttpxFetcher("test-agent", transport=httpx.MockTransport(handler))
        async with fetcher:
            page = await fetcher.new_page()
            try:
                return await page.navigate(url, 5000)
            finally:
                await page.close()
                assert fetcher.open_page_count() == 0

    return asyncio.run(go())


class TestHttpxResponses:
    @given(status=st.sampled_from([200, 204, 403, 404, 410, 500, 503]))
    @settings(max_examples=20, deadline=None)
    def test_status_is_reported(self, status: int) -> None:
        result = fetch_with(lambda request: httpx.Response(status, text="body"))
        assert result.status_code == status
        assert result.final_url.startswith("https://site.example")
        assert result.body == "body"

    def test_redirects_are_followed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "old.example":
                return httpx.Response(301, headers={"Location": "https://new.example/landing"})
            return httpx.Response(200, text="<html>new</html>")

        result = fetch_with(handler, "https://old.example")

        assert result.status_code == 200
        assert result.final_url == "https://new.example/landing"

    def test_user_agent_is_sent(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["User-Agent"])
            return httpx.Response(200)

        fetch_with(handler)
        assert seen == ["test-agent"]


class TestHttpxErrorMapping:
    """
    **Property 1: Transport exceptions surface as classified FetchErrors**
    """

    @pytest.mark.parametrize(
        "exception,kind",
        [
            (httpx.ConnectTimeout("timed out"), ErrorKind.CONNECTION),
            (httpx.ReadTimeout("read timed out"), ErrorKind.NAVIGATION_TIMEOUT),
            (httpx.ConnectError("[Errno -2] Name or service not known"), ErrorKind.CONNECTION),
            (httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed"), ErrorKind.CERTIFICATE),
            (httpx.RemoteProtocolError("Server disconnected without sending a response."), ErrorKind.UNKNOWN),
        ],
    )
    def test_exception_kinds(self, exception: Exception, kind: ErrorKind) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exception

        with pytest.raises(FetchError) as exc_info:
            fetch_with(handler)

        assert exc_info.value.kind == kind
        assert exc_info.value.details["url"] == "https://site.example"

    def test_page_before_start_is_rejected(self) -> None:
        fetcher = HttpxFetcher("test-agent")
        with pytest.raises(FetcherStartupError) as exc_info:
            asyncio.run(fetcher.new_page())
        assert exc_info.value.code == "client_not_started"


class TestPageTracking:
    """
    **Property 2: The fetcher knows exactly which pages are open**
    """

    @given(opened=st.integers(min_value=0, max_value=10), closed=st.integers(min_value=0, max_value=10))
    @settings(max_examples=50)
    def test_open_count_and_sweep(self, opened: int, closed: int) -> None:
        fetcher = FakeFetcher()

        async def scenario() -> int:
            pages = [await fetcher.new_page() for _ in range(opened)]
            for page in pages[:closed]:
                await page.close()
            assert fetcher.open_page_count() == max(opened - closed, 0)
            return await fetcher.close_lingering()

        swept = asyncio.run(scenario())

        assert swept == max(opened - closed, 0)
        assert fetcher.open_page_count() == 0
        assert fetcher.closed_pages == opened

    def test_close_is_idempotent(self) -> None:
        fetcher = FakeFetcher()

        async def scenario() -> None:
            page = await fetcher.new_page()
            await page.close()
            await page.close()
            assert page.closed

        asyncio.run(scenario())
        assert fetcher.closed_pages == 1

    def test_context_manager_starts_and_stops(self) -> None:
        fetcher = FakeFetcher()

        async def scenario() -> None:
            async with fetcher:
                assert fetcher.started

        asyncio.run(scenario())
        assert fetcher.stopped


class TestCreateFetcher:
    def test_engine_selection(self) -> None:
        base = CleanerConfig(input_file=Path("list.txt"))
        assert isinstance(create_fetcher(base), PlaywrightFetcher)

        httpx_config = CleanerConfig(input_file=Path("list.txt"), engine=FetchEngine.HTTPX)
        fetcher = create_fetcher(httpx_config)
        assert isinstance(fetcher, HttpxFetcher)
        assert fetcher.name == "httpx"
