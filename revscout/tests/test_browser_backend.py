"""Tests for BrowserScraperBackend with a scripted browser."""

import asyncio

import pytest

from revscout.core.errors import ClassifiedError
from revscout.core.operation_config import ErrorKind, OperationConfig
from revscout.models.reviews import ScrapeOptions
from revscout.scrapers import BrowserScraperBackend
from revscout.scrapers.browser_backend import DESKTOP_HEADERS, MOBILE_HEADERS

MOBILE = "https://www.amazon.com/gp/aw/reviews/T1"
DESKTOP = "https://www.amazon.com/product-reviews/T1"
REVIEWS_PAGE = "<html><head><title>Customer reviews</title></head><body>5 stars</body></html>"
CAPTCHA_PAGE = '<form action="/errors/validateCaptcha"><input id="captchacharacters"></form>'


class FakeResponse:
    def __init__(self, status):
        self.status = status


class FakePage:
    """Page whose navigations follow a url -> step script.

    A step is ``(html, status)`` or an exception; a list of steps is consumed in order.
    """

    def __init__(self, script):
        self.script = script
        self.url = "about:blank"
        self.html = ""
        self.visits = []
        self.closed = False
        self.default_timeout = None

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    async def goto(self, url, wait_until=None):
        self.visits.append(url)
        await asyncio.sleep(0)
        step = self.script[url]
        if isinstance(step, list):
            step = step.pop(0) if len(step) > 1 else step[0]
        if isinstance(step, Exception):
            raise step
        self.html, status = step
        self.url = url
        return FakeResponse(status)

    async def content(self):
        return self.html

    async def title(self):
        await asyncio.sleep(0)
        return "Customer reviews"

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, script, options):
        self.options = options
        self.page = FakePage(script)
        self.headers = []
        self.closed = False

    async def new_page(self):
        return self.page

    async def set_extra_http_headers(self, headers):
        self.headers.append(headers)

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, script):
        self.script = script
        self.contexts = []
        self.closed = False

    async def new_context(self, **options):
        context = FakeContext(self.script, options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True

    @property
    def visits(self):
        return [url for c in self.contexts for url in c.page.visits]


def make_backend(browser, clock, **kwargs):
    settings = dict(base_delay=1.0, rate_limit_min_delay=0.0, rate_limit_max_delay=0.0)
    settings.update(kwargs.pop("config", {}))

    async def launcher():
        return browser

    return BrowserScraperBackend(
        config=OperationConfig(**settings),
        launcher=launcher,
        sleep=clock.sleep,
        clock=clock,
        **kwargs,
    )


class TestNavigation:
    """Test mobile-first navigation with desktop fallback."""

    @pytest.mark.asyncio
    async def test_mobile_page_used_when_clear(self, clock):
        """Test a clear mobile page is extracted without visiting desktop."""
        browser = FakeBrowser({MOBILE: (REVIEWS_PAGE, 200)})
        backend = make_backend(browser, clock, user_agent="UA/1.0", proxy_server="http://proxy:8080")

        data = await backend.fetch("T1", ScrapeOptions())

        assert data["url"] == MOBILE
        assert data["html"] == REVIEWS_PAGE
        assert browser.visits == [MOBILE]
        context = browser.contexts[0]
        assert context.headers == [MOBILE_HEADERS]
        assert context.options == {"user_agent": "UA/1.0", "proxy": {"server": "http://proxy:8080"}}
        assert context.page.default_timeout == 60000

    @pytest.mark.asyncio
    async def test_falls_back_to_desktop(self, clock):
        """Test a blocked mobile page falls back to the desktop reviews page."""
        browser = FakeBrowser({MOBILE: (CAPTCHA_PAGE, 200), DESKTOP: (REVIEWS_PAGE, 200)})
        backend = make_backend(browser, clock)

        data = await backend.fetch("T1", ScrapeOptions())

        assert data["url"] == DESKTOP
        assert browser.visits == [MOBILE, DESKTOP]
        assert browser.contexts[0].headers == [MOBILE_HEADERS, DESKTOP_HEADERS]

    @pytest.mark.asyncio
    async def test_both_blocked(self, clock):
        """Test a block on both pages raises BLOCKED without retrying."""
        browser = FakeBrowser({MOBILE: (CAPTCHA_PAGE, 200), DESKTOP: (CAPTCHA_PAGE, 200)})
        backend = make_backend(browser, clock)

        with pytest.raises(ClassifiedError) as info:
            await backend.fetch("T1", ScrapeOptions())

        assert info.value.kind == ErrorKind.BLOCKED
        assert info.value.context["target_id"] == "T1"
        assert browser.visits == [MOBILE, DESKTOP]
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_navigation_error_is_retried(self, clock):
        """Test a failed navigation counts as NETWORK and is retried after backoff."""
        browser = FakeBrowser(
            {MOBILE: [RuntimeError("net::ERR_CONNECTION_RESET"), (REVIEWS_PAGE, 200)]}
        )
        backend = make_backend(browser, clock)

        data = await backend.fetch("T1", ScrapeOptions())

        assert data["url"] == MOBILE
        assert browser.visits == [MOBILE, MOBILE]
        assert clock.sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_navigation_error_exhausts_attempts(self, clock):
        """Test persistent navigation failures surface as NETWORK."""
        browser = FakeBrowser({MOBILE: RuntimeError("net::ERR_NAME_NOT_RESOLVED")})
        backend = make_backend(browser, clock, config={"max_attempts": 2})

        with pytest.raises(ClassifiedError) as info:
            await backend.fetch("T1", ScrapeOptions())

        assert info.value.kind == ErrorKind.NETWORK
        assert len(browser.visits) == 2

    @pytest.mark.asyncio
    async def test_missing_product(self, clock):
        """Test a 404 page raises NOT_FOUND."""
        browser = FakeBrowser({MOBILE: (REVIEWS_PAGE, 404)})
        backend = make_backend(browser, clock)

        with pytest.raises(ClassifiedError) as info:
            await backend.fetch("T1", ScrapeOptions())

        assert info.value.kind == ErrorKind.NOT_FOUND
        assert browser.visits == [MOBILE]


class TestExtraction:
    """Test the phases after navigation."""

    @pytest.mark.asyncio
    async def test_hook_runs_before_extractor(self, clock):
        """Test the between-phases hook sees the page before extraction."""
        calls = []

        async def hook(page):
            calls.append(("hook", page.url))

        async def extractor(page, target_id, options):
            calls.append(("extract", target_id))
            return {"reviews": options.reviews_count}

        browser = FakeBrowser({MOBILE: (REVIEWS_PAGE, 200)})
        backend = make_backend(browser, clock, between_phases=hook, extractor=extractor)

        data = await backend.fetch("T1", ScrapeOptions(reviews_count=7))

        assert data == {"reviews": 7}
        assert calls == [("hook", MOBILE), ("extract", "T1")]

    @pytest.mark.asyncio
    async def test_extractor_failure_is_parsing(self, clock):
        """Test an extractor exception surfaces as PARSING."""

        async def extractor(page, target_id, options):
            raise KeyError("review-list")

        browser = FakeBrowser({MOBILE: (REVIEWS_PAGE, 200)})
        backend = make_backend(browser, clock, extractor=extractor)

        with pytest.raises(ClassifiedError) as info:
            await backend.fetch("T1", ScrapeOptions())

        assert info.value.kind == ErrorKind.PARSING
        assert info.value.context["url"] == MOBILE


class TestLifecycle:
    """Test browser and context lifecycle."""

    @pytest.mark.asyncio
    async def test_context_rotates_after_budget(self, clock):
        """Test the browser context is replaced once the request budget is spent."""
        browser = FakeBrowser({MOBILE: (REVIEWS_PAGE, 200)})
        backend = make_backend(browser, clock, config={"max_requests_per_session": 1})

        await backend.fetch("T1", ScrapeOptions())

        assert len(browser.contexts) == 2
        assert browser.contexts[0].closed
        assert browser.contexts[0].page.closed
        assert not browser.contexts[1].closed

    @pytest.mark.asyncio
    async def test_teardown_closes_everything(self, clock):
        """Test teardown closes the context and the browser."""
        browser = FakeBrowser({MOBILE: (REVIEWS_PAGE, 200)})
        backend = make_backend(browser, clock)

        await backend.initialize()
        await backend.teardown()

        assert browser.contexts[0].closed
        assert browser.closed

    @pytest.mark.asyncio
    async def test_launch_failure(self, clock):
        """Test a browser that cannot start raises UNKNOWN."""

        async def launcher():
            raise ConnectionRefusedError("ws endpoint refused")

        backend = BrowserScraperBackend(launcher=launcher, sleep=clock.sleep, clock=clock)

        with pytest.raises(ClassifiedError) as info:
            await backend.initialize()

        assert info.value.kind == ErrorKind.UNKNOWN
        assert "Failed to initialize browser" in info.value.message


class TestConcurrency:
    """Test fetches that overlap on one backend."""

    @pytest.mark.asyncio
    async def test_concurrent_fetches_get_their_own_page(self, clock):
        """Test overlapping fetches do not read each other's page."""
        other = "https://www.amazon.com/gp/aw/reviews/T2"
        browser = FakeBrowser(
            {
                MOBILE: ("<html><body>product T1</body></html>", 200),
                other: ("<html><body>product T2</body></html>", 200),
            }
        )
        backend = make_backend(browser, clock)

        first, second = await asyncio.gather(
            backend.fetch("T1", ScrapeOptions()), backend.fetch("T2", ScrapeOptions())
        )

        assert first["url"] == MOBILE
        assert "product T1" in first["html"]
        assert second["url"] == other
        assert "product T2" in second["html"]
        assert browser.visits == [MOBILE, other]
