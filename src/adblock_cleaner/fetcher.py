"""
Page fetch adapters.

A fetcher opens one page per probing attempt. A page navigates to a URL and
reports the status code, the final URL after redirects and the document
body, or raises FetchError with an already classified ErrorKind.

Two adapters are provided:
- PlaywrightFetcher: headless Chromium, certificate errors ignored,
  optional blocking of images, stylesheets, fonts and media
- HttpxFetcher: plain HTTP client following redirects, for hosts
  without a browser
"""

import contextlib
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .audit_logger import AuditLogger
from .config import CleanerConfig
from .decision_engine import classify_error_message
from .enums import ErrorKind, FetchEngine, LogLevel
from .exceptions import FetcherStartupError, FetchError
from .models import FetchResult


BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--ignore-certificate-errors",
    "--ignore-certificate-errors-spki-list",
]


class PageHandle(ABC):
    """One probing resource. close() is idempotent."""

    def __init__(self, owner: "PageFetcher") -> None:
        self._owner = owner
        self._closed = False
        self.current_url = ""

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: float) -> FetchResult:
        """
        Navigate to ``url``.

        Raises:
            FetchError: If navigation failed without a response
        """

    @abstractmethod
    async def _close_resource(self) -> None:
        """Release the underlying resource."""

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._owner._release(self)
        await self._close_resource()


class PageFetcher(ABC):
    """
    Base class for page fetch adapters.

    Tracks every open page so the scheduler can sweep leaks after a batch.
    """

    name = "fetcher"

    def __init__(
        self,
        user_agent: str,
        block_resources: bool = True,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._user_agent = user_agent
        self._block_resources = block_resources
        self._logger = logger
        self._open_pages: set[PageHandle] = set()

    async def __aenter__(self) -> "PageFetcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @abstractmethod
    async def start(self) -> None:
        """
        Start the engine.

        Raises:
            FetcherStartupError: If the engine cannot be started
        """

    @abstractmethod
    async def stop(self) -> None:
        """Shut the engine down."""

    @abstractmethod
    async def _create_page(self) -> PageHandle:
        pass

    async def new_page(self) -> PageHandle:
        page = await self._create_page()
        self._open_pages.add(page)
        return page

    def _release(self, page: PageHandle) -> None:
        self._open_pages.discard(page)

    def open_page_count(self) -> int:
        return len(self._open_pages)

    async def close_lingering(self) -> int:
        """Force-close every page still open. Returns how many were closed."""
        lingering = list(self._open_pages)
        for page in lingering:
            self._debug("browser", f"Closing lingering page: {page.current_url or 'about:blank'}")
            await page.close()
        return len(lingering)

    def _debug(self, category: str, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.debug(self.__class__.__name__, message, data, category=category)


class PlaywrightPage(PageHandle):
    """A Chromium tab."""

    def __init__(self, owner: "PlaywrightFetcher", page) -> None:
        super().__init__(owner)
        self._page = page

    async def navigate(self, url: str, timeout_ms: float) -> FetchResult:
        self.current_url = url
        try:
            response = await self._page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=timeout_ms,
            )
        except PlaywrightTimeoutError as e:
            raise FetchError(
                f"Navigation timeout of {timeout_ms:.0f} ms exceeded",
                ErrorKind.NAVIGATION_TIMEOUT,
                {"url": url, "error": str(e)},
            ) from e
        except PlaywrightError as e:
            if self.closed:
                raise FetchError(
                    f"Page was force-closed during navigation to {url}",
                    ErrorKind.FORCE_CLOSED,
                    {"url": url},
                ) from e
            message = str(e)
            raise FetchError(message, classify_error_message(message), {"url": url}) from e

        final_url = self._page.url
        self.current_url = final_url
        try:
            body = await self._page.content()
        except PlaywrightError:
            # Page is still navigating (client-side redirect); status is enough
            body = ""

        return FetchResult(
            status_code=response.status if response is not None else None,
            final_url=final_url,
            body=body,
        )

    async def _close_resource(self) -> None:
        with contextlib.suppress(PlaywrightError):
            await self._page.close()


class PlaywrightFetcher(PageFetcher):
    """Headless Chromium via Playwright."""

    name = "Playwright"

    def __init__(
        self,
        user_agent: str,
        block_resources: bool = True,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        super().__init__(user_agent, block_resources, logger)
        self._playwright = None
        self._browser = None
        self._context = None

    async def start(self) -> None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=CHROMIUM_ARGS,
            )
            self._context = await self._browser.new_context(
                ignore_https_errors=True,
                user_agent=self._user_agent,
            )
            if self._block_resources:
                await self._context.route("**/*", self._route_handler)
        except PlaywrightError as e:
            if self._logger:
                self._logger.log_error(self.__class__.__name__, "Browser launch failed", error=e)
            await self.stop()
            raise FetcherStartupError(
                code="browser_launch_failed",
                message=f"Failed to launch browser: {e}",
            ) from e
        self._debug("browser", "Browser launched", {"block_resources": self._block_resources})

    async def stop(self) -> None:
        if self._context is not None:
            with contextlib.suppress(PlaywrightError):
                await self._context.close()
            self._context = None
        if self._browser is not None:
            with contextlib.suppress(PlaywrightError):
                await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def _route_handler(self, route, request) -> None:
        # Routes of a page closed mid-request raise; nothing left to do then
        with contextlib.suppress(PlaywrightError):
            if request.resource_type in BLOCKED_RESOURCE_TYPES:
                await route.abort()
            else:
                await route.continue_()

    async def _create_page(self) -> PageHandle:
        if self._context is None:
            raise FetcherStartupError(
                code="browser_not_started",
                message="Browser is not running",
            )
        page = await self._context.new_page()
        if self._logger and self._logger.is_enabled(LogLevel.DEBUG, "network"):
            page.on("request", lambda req: self._debug("network", f"Request: {req.method} {req.url}"))
            page.on("response", lambda resp: self._debug("network", f"Response: {resp.status} {resp.url}"))
            page.on(
                "requestfailed",
                lambda req: self._debug("network", f"Request failed: {req.url} - {req.failure}"),
            )
        self._debug("browser", "Created new page")
        return PlaywrightPage(self, page)


class HttpxPage(PageHandle):
    """A single HTTP GET with redirects followed."""

    def __init__(self, owner: "HttpxFetcher", client: httpx.AsyncClient) -> None:
        super().__init__(owner)
        self._client = client

    async def navigate(self, url: str, timeout_ms: float) -> FetchResult:
        self.current_url = url
        try:
            response = await self._client.get(url, timeout=httpx.Timeout(timeout_ms / 1000))
        except httpx.ConnectTimeout as e:
            raise FetchError(
                f"Connection timed out: {url}",
                ErrorKind.CONNECTION,
                {"url": url},
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Navigation timeout of {timeout_ms:.0f} ms exceeded",
                ErrorKind.NAVIGATION_TIMEOUT,
                {"url": url},
            ) from e
        except httpx.ConnectError as e:
            message = str(e) or type(e).__name__
            kind = classify_error_message(message)
            if kind == ErrorKind.UNKNOWN:
                kind = ErrorKind.CONNECTION
            raise FetchError(message, kind, {"url": url}) from e
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            raise FetchError(message, classify_error_message(message), {"url": url}) from e

        self.current_url = str(response.url)
        return FetchResult(
            status_code=response.status_code,
            final_url=str(response.url),
            body=response.text,
        )

    async def _close_resource(self) -> None:
        pass


class HttpxFetcher(PageFetcher):
    """
    Redirect-following HTTP client.

    Sub-resources are never loaded, so resource blocking is implicit.
    """

    name = "httpx"

    def __init__(
        self,
        user_agent: str,
        block_resources: bool = True,
        logger: Optional[AuditLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(user_agent, block_resources, logger)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._client = httpx.AsyncClient(
            verify=False,  # certificate problems must not hide a live site
            follow_redirects=True,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        )
        self._debug("browser", "HTTP client started")

    async def stop(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _create_page(self) -> PageHandle:
        if self._client is None:
            raise FetcherStartupError(
                code="client_not_started",
                message="HTTP client is not running",
            )
        return HttpxPage(self, self._client)


def create_fetcher(config: CleanerConfig, logger: Optional[AuditLogger] = None) -> PageFetcher:
    """Build the fetch adapter selected in the config."""
    if config.engine == FetchEngine.HTTPX:
        return HttpxFetcher(config.user_agent, config.block_resources, logger)
    return PlaywrightFetcher(config.user_agent, config.block_resources, logger)
