"""Browser-driven scraper backend for revscout.

Drives a remote (CDP websocket) or local headless Chromium through Playwright.
Field extraction is delegated to an injectable extractor.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from revscout.config import Config
from revscout.core.detection import BlockDetector
from revscout.core.errors import ClassifiedError
from revscout.core.execution import BackoffRetrier, ErrorClassifier, run_with_deadline
from revscout.core.logging import logger
from revscout.core.operation_config import ErrorKind, OperationConfig
from revscout.core.session import RateLimiter, SessionManager, SessionResource
from revscout.integrations.brightdata.endpoints import AMAZON_BASE_URL
from revscout.models.reviews import ScrapeOptions
from revscout.scrapers.base import ScraperBackend

Extractor = Callable[[Any, str, ScrapeOptions], Awaitable[Any]]
PageHook = Callable[[Any], Awaitable[Any]]
Launcher = Callable[[], Awaitable[Any]]

MOBILE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Ch-Ua-Mobile": "?1",
    "Sec-Ch-Ua-Platform": '"Android"',
    "Upgrade-Insecure-Requests": "1",
}

DESKTOP_HEADERS = {
    **MOBILE_HEADERS,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
}


async def default_extractor(page: Any, target_id: str, options: ScrapeOptions) -> Dict[str, Any]:
    """Return the raw page snapshot; site selectors live with the caller."""
    return {
        "target_id": target_id,
        "url": page.url,
        "title": await page.title(),
        "html": await page.content(),
    }


class BrowserContextSession(SessionResource):
    """A browser context and its page; rotated as the logical session."""

    def __init__(
        self,
        browser_provider: Callable[[], Any],
        user_agent: Optional[str],
        proxy_server: Optional[str],
        timeout_ms: int,
    ):
        self._browser_provider = browser_provider
        self.user_agent = user_agent
        self.proxy_server = proxy_server
        self.timeout_ms = timeout_ms
        self.context: Any = None
        self.page: Any = None

    async def initialize(self) -> None:
        browser = self._browser_provider()
        if browser is None:
            raise ClassifiedError(ErrorKind.UNKNOWN, "Browser not initialized")
        context_options: Dict[str, Any] = {}
        if self.user_agent:
            context_options["user_agent"] = self.user_agent
        if self.proxy_server:
            context_options["proxy"] = {"server": self.proxy_server}
        self.context = await browser.new_context(**context_options)
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.timeout_ms)
        logger.info("browser_context_created", proxy=bool(self.proxy_server))

    async def teardown(self) -> None:
        if self.page is not None:
            await self.page.close()
        if self.context is not None:
            await self.context.close()
        self.page = None
        self.context = None


class BrowserScraperBackend(ScraperBackend):
    """Scrapes product review pages with a real browser.

    Navigation tries the mobile reviews URL first and falls back to the desktop
    URL when the mobile page is blocked. Every navigation is checked by the
    BlockDetector; a block on the fallback too is a terminal BLOCKED error.
    """

    name = "browser"

    def __init__(
        self,
        config: Optional[OperationConfig] = None,
        ws_endpoint: Optional[str] = None,
        user_agent: Optional[str] = None,
        proxy_server: Optional[str] = None,
        detector: Optional[BlockDetector] = None,
        classifier: Optional[ErrorClassifier] = None,
        extractor: Extractor = default_extractor,
        between_phases: Optional[PageHook] = None,
        launcher: Optional[Launcher] = None,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = AMAZON_BASE_URL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize BrowserScraperBackend.

        Args:
            config: OperationConfig (defaults if omitted)
            ws_endpoint: CDP websocket of a remote scraping browser; local launch if None
            user_agent: User agent for new contexts
            proxy_server: Proxy server for new contexts
            detector: BlockDetector used after each navigation
            classifier: ErrorClassifier for navigation failures
            extractor: Coroutine (page, target_id, options) -> data
            between_phases: Optional coroutine run on the page between navigation
                and extraction (human-behaviour simulation and the like)
            launcher: Optional coroutine returning a browser; replaces Playwright
            rate_limiter: RateLimiter for request spacing (built from config if omitted)
            base_url: Site base URL
            sleep: Awaitable sleep for backoff waits
            clock: Monotonic time source
        """
        self.config = config or OperationConfig()
        self.ws_endpoint = ws_endpoint
        self.base_url = base_url.rstrip("/")
        self.detector = detector or BlockDetector()
        self.classifier = classifier or ErrorClassifier(self.detector)
        self.retrier = BackoffRetrier(self.config, self.classifier, sleep=sleep)
        self.extractor = extractor
        self.between_phases = between_phases
        self._launcher = launcher
        # Fetches share one page and must not interleave
        self._page_lock = asyncio.Lock()
        self._playwright: Any = None
        self._browser: Any = None
        self.context_session = BrowserContextSession(
            lambda: self._browser,
            user_agent,
            proxy_server,
            timeout_ms=int(self.config.request_timeout * 1000),
        )
        self.session = SessionManager(
            self.context_session,
            self.config,
            rate_limiter=rate_limiter
            or RateLimiter(
                self.config.rate_limit_min_delay,
                self.config.rate_limit_max_delay,
                clock=clock,
                sleep=sleep,
            ),
            clock=clock,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "BrowserScraperBackend":
        kwargs.setdefault("config", Config.operation_config())
        kwargs.setdefault("ws_endpoint", Config.scraping_browser_ws_endpoint())
        kwargs.setdefault("user_agent", Config.user_agent())
        kwargs.setdefault("proxy_server", Config.proxy_server())
        return cls(**kwargs)

    async def initialize(self) -> None:
        if self._browser is None:
            try:
                self._browser = await self._launch()
            except ClassifiedError:
                raise
            except Exception as e:
                raise ClassifiedError(
                    ErrorKind.UNKNOWN, f"Failed to initialize browser: {e}", e
                ) from e
            logger.info("browser_started", remote=bool(self.ws_endpoint))
        await self.session.start()

    async def teardown(self) -> None:
        await self.session.close()
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("browser_stopped")

    async def fetch(self, target_id: str, options: ScrapeOptions) -> Any:
        timeout = options.timeout or self.config.overall_timeout
        return await run_with_deadline(
            self._fetch(target_id, options),
            timeout,
            operation=f"Browser scrape of {target_id}",
        )

    async def _fetch(self, target_id: str, options: ScrapeOptions) -> Any:
        async with self._page_lock:
            return await self._fetch_locked(target_id, options)

    async def _fetch_locked(self, target_id: str, options: ScrapeOptions) -> Any:
        if self._browser is None:
            await self.initialize()
        await self.session.before_request()
        try:
            await self.retrier.execute(
                lambda: self._navigate(target_id), context={"target_id": target_id}
            )
            page = self.context_session.page
            if self.between_phases is not None:
                await self.between_phases(page)
            try:
                return await self.extractor(page, target_id, options)
            except ClassifiedError:
                raise
            except Exception as e:
                raise ClassifiedError(
                    ErrorKind.PARSING,
                    f"Failed to extract data for {target_id}: {e}",
                    e,
                    {"target_id": target_id, "url": page.url},
                ) from e
        finally:
            await self.session.after_request()

    async def _navigate(self, target_id: str) -> None:
        mobile_url = f"{self.base_url}/gp/aw/reviews/{target_id}"
        desktop_url = f"{self.base_url}/product-reviews/{target_id}"

        verdict = await self._goto(mobile_url, MOBILE_HEADERS)
        if verdict.blocked:
            logger.info("mobile_page_blocked", target_id=target_id, reason=verdict.reason)
            verdict = await self._goto(desktop_url, DESKTOP_HEADERS)
        self.detector.raise_if_blocked(verdict, target_id=target_id, url=self.context_session.page.url)

    async def _goto(self, url: str, headers: Dict[str, str]):
        page = self.context_session.page
        await self.context_session.context.set_extra_http_headers(headers)
        logger.debug("navigating", url=url)
        try:
            response = await page.goto(url, wait_until="domcontentloaded")
        except Exception as e:
            classified = self.classifier.classify(e, {"url": url})
            if classified.kind == ErrorKind.UNKNOWN:
                # Navigation failures are transport problems unless shown otherwise
                classified = ClassifiedError(
                    ErrorKind.NETWORK, f"Failed to navigate to {url}: {e}", e, {"url": url}
                )
            raise classified from e

        verdict = await self.detector.inspect_page(page, requested_url=url)
        if verdict.blocked:
            return verdict
        if response is not None and response.status >= 400:
            raise self.classifier.classify_status(
                response.status, f"Page error ({response.status}) at {url}", context={"url": url}
            )
        return verdict

    async def _launch(self) -> Any:
        if self._launcher is not None:
            return await self._launcher()
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        if self.ws_endpoint:
            return await self._playwright.chromium.connect_over_cdp(self.ws_endpoint)
        return await self._playwright.chromium.launch(headless=True)
