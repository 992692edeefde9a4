"""Tests for the revscout API and the ReviewScraper orchestrator."""

import pytest
from fastapi.testclient import TestClient

from revscout.api import create_app
from revscout.core.errors import ClassifiedError
from revscout.core.operation_config import ErrorKind
from revscout.core.orchestration import ReviewScraper
from revscout.integrations.brightdata import transform_snapshot
from revscout.scrapers.base import ScraperBackend
from revscout.tests.fakes import product_document


class FakeBackend(ScraperBackend):
    """Backend returning a canned result or raising a scripted error."""

    name = "fake"

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.cleared = []
        self.initialized = 0
        self.torn_down = 0

    async def initialize(self):
        self.initialized += 1

    async def fetch(self, target_id, options):
        self.calls.append((target_id, options))
        if self.error is not None:
            raise self.error
        return transform_snapshot(product_document(target_id), target_id, duration_ms=12)

    async def teardown(self):
        self.torn_down += 1

    def clear_cache(self, key=None):
        self.cleared.append(key)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    with TestClient(create_app(ReviewScraper(backend))) as test_client:
        yield test_client


class TestHealth:
    """Test the health route."""

    def test_healthy_with_scraper(self, client, monkeypatch):
        """Test health reports the backend and missing configuration."""
        monkeypatch.delenv("BRIGHTDATA_API_KEY", raising=False)
        monkeypatch.setenv("BRIGHTDATA_DATASET_ID", "gd_123")

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["backend"] == "fake"
        assert body["missing_config"] == ["BRIGHTDATA_API_KEY"]

    def test_degraded_without_scraper(self):
        """Test health is degraded when no scraper is configured."""
        with TestClient(create_app()) as test_client:
            body = test_client.get("/health").json()
        assert body["status"] == "degraded"
        assert body["backend"] is None

    def test_request_id_echoed(self, client):
        """Test an incoming X-Request-ID is returned on the response."""
        response = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestReviewsRoute:
    """Test GET /reviews/{target_id}."""

    def test_success(self, client, backend):
        """Test a successful scrape returns the serialized result."""
        response = client.get("/reviews/T1", params={"reviews_count": 3, "sort_by": "most_recent"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["product"]["id"] == "T1"
        assert len(body["data"]["reviews"]) == 2
        target_id, options = backend.calls[0]
        assert target_id == "T1"
        assert options.reviews_count == 3
        assert options.sort_by == "most_recent"

    @pytest.mark.parametrize(
        "kind,status",
        [
            (ErrorKind.NETWORK, 503),
            (ErrorKind.TIMEOUT, 504),
            (ErrorKind.BLOCKED, 403),
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.PARSING, 502),
            (ErrorKind.UNKNOWN, 500),
        ],
    )
    def test_classified_errors(self, kind, status):
        """Test each error kind maps to its HTTP status."""
        backend = FakeBackend(error=ClassifiedError(kind, "nope"))
        with TestClient(create_app(ReviewScraper(backend))) as test_client:
            response = test_client.get("/reviews/T1")

        assert response.status_code == status
        body = response.json()
        assert body["success"] is False
        assert body["error_kind"] == kind.value
        assert body["retryable"] == (kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT))

    def test_unexpected_error_is_classified(self):
        """Test an unclassified backend exception surfaces as UNKNOWN."""
        backend = FakeBackend(error=ValueError("selector drifted"))
        with TestClient(create_app(ReviewScraper(backend))) as test_client:
            response = test_client.get("/reviews/T1")

        assert response.status_code == 500
        assert response.json()["error"] == "selector drifted"

    @pytest.mark.parametrize("params", [{"reviews_count": 0}, {"sort_by": "cheapest"}])
    def test_invalid_options(self, client, backend, params):
        """Test invalid options are rejected before scraping."""
        response = client.get("/reviews/T1", params=params)

        assert response.status_code == 400
        assert backend.calls == []

    def test_no_scraper(self):
        """Test 503 when the app has no scraper."""
        with TestClient(create_app()) as test_client:
            response = test_client.get("/reviews/T1")
        assert response.status_code == 503


class TestCacheRoute:
    """Test DELETE /cache."""

    def test_clear_one_key(self, client, backend):
        """Test a key is passed through to the backend."""
        response = client.delete("/cache", params={"key": "abc"})

        assert response.json()["cleared"] == "abc"
        assert backend.cleared == ["abc"]

    def test_clear_all(self, client, backend):
        """Test no key clears everything."""
        response = client.delete("/cache")

        assert response.json()["cleared"] == "all"
        assert backend.cleared == [None]


class TestReviewScraper:
    """Test orchestrator lifecycle and error handling."""

    @pytest.mark.asyncio
    async def test_context_manager_lifecycle(self):
        """Test the backend is initialized once and torn down on exit."""
        backend = FakeBackend()
        async with ReviewScraper(backend) as scraper:
            await scraper.scrape("T1")
            await scraper.scrape("T2")

        assert backend.initialized == 1
        assert backend.torn_down == 1

    @pytest.mark.asyncio
    async def test_classified_error_passes_through(self):
        """Test a ClassifiedError from the backend is re-raised unchanged."""
        error = ClassifiedError(ErrorKind.BLOCKED, "captcha")
        scraper = ReviewScraper(FakeBackend(error=error))

        with pytest.raises(ClassifiedError) as info:
            await scraper.scrape("T1")

        assert info.value is error

    @pytest.mark.asyncio
    async def test_raw_error_is_wrapped(self):
        """Test a raw exception is classified with the original as cause."""
        raw = ConnectionResetError("peer reset")
        scraper = ReviewScraper(FakeBackend(error=raw))

        with pytest.raises(ClassifiedError) as info:
            await scraper.scrape("T1")

        assert info.value.kind == ErrorKind.NETWORK
        assert info.value.cause is raw
        assert info.value.__cause__ is raw
