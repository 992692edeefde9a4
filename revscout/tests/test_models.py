"""Tests for job, option and result models."""

import pytest
from pydantic import ValidationError

from revscout.core.errors import ClassifiedError
from revscout.core.operation_config import ErrorKind, OperationConfig
from revscout.integrations.brightdata import transform_snapshot
from revscout.models import Job, JobPhase, JobStatus, ScrapeOptions
from revscout.tests.fakes import product_document


class TestJob:
    """Test the job state machine."""

    def test_happy_path(self):
        """Test submitted -> polling -> completed records the result."""
        job = Job(id="J1")
        job.advance(JobPhase.POLLING)
        job.advance(JobPhase.POLLING)
        job.mark_ready({"ok": True})

        assert job.status == JobStatus.READY
        assert job.result == {"ok": True}
        assert job.terminal
        assert job.history == [JobPhase.IDLE, JobPhase.SUBMITTED, JobPhase.POLLING, JobPhase.COMPLETED]

    def test_failed(self):
        """Test a failed job keeps its reason."""
        job = Job(id="J1")
        job.advance(JobPhase.POLLING)
        job.mark_failed("quota exceeded")

        assert job.phase == JobPhase.FAILED
        assert job.failure_reason == "quota exceeded"

    @pytest.mark.parametrize(
        "path",
        [
            [JobPhase.COMPLETED],
            [JobPhase.POLLING, JobPhase.COMPLETED, JobPhase.POLLING],
            [JobPhase.POLLING, JobPhase.TIMED_OUT, JobPhase.COMPLETED],
            [JobPhase.SUBMITTED],
        ],
    )
    def test_illegal_transitions(self, path):
        """Test skipped or backward transitions are rejected."""
        job = Job(id="J1")
        with pytest.raises(ValueError, match="Illegal job transition"):
            for phase in path:
                job.advance(phase)


class TestJobStatus:
    """Test wire status parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("ready", JobStatus.READY),
            ("Done", JobStatus.READY),
            ("completed", JobStatus.READY),
            ("failed", JobStatus.FAILED),
            ("error", JobStatus.FAILED),
            ("running", JobStatus.RUNNING),
            ("building", JobStatus.RUNNING),
        ],
    )
    def test_parse(self, value, expected):
        """Test known and in-progress values."""
        assert JobStatus.parse(value) == expected

    def test_parse_rejects_non_string(self):
        """Test a missing status is an error, not 'running'."""
        with pytest.raises(ValueError):
            JobStatus.parse(None)


class TestScrapeOptions:
    """Test scrape options and their fingerprint."""

    def test_defaults(self):
        """Test default options."""
        options = ScrapeOptions()
        assert options.country == "us"
        assert options.reviews_count == 2
        assert options.sort_by == "most_helpful"
        assert options.timeout is None

    def test_fingerprint_is_stable(self):
        """Test equal options give equal keys and different options differ."""
        assert ScrapeOptions().fingerprint("T1") == ScrapeOptions().fingerprint("T1")
        assert ScrapeOptions().fingerprint("T1") != ScrapeOptions().fingerprint("T2")
        assert ScrapeOptions().fingerprint("T1") != ScrapeOptions(country="de").fingerprint("T1")

    def test_fingerprint_ignores_timeout(self):
        """Test the deadline does not change which cached result applies."""
        assert ScrapeOptions(timeout=5).fingerprint("T1") == ScrapeOptions().fingerprint("T1")

    @pytest.mark.parametrize("kwargs", [{"reviews_count": 0}, {"timeout": 0}, {"sort_by": "newest"}])
    def test_validation(self, kwargs):
        """Test invalid option values are rejected."""
        with pytest.raises(ValidationError):
            ScrapeOptions(**kwargs)


class TestOperationConfig:
    """Test operation config validation and backoff."""

    def test_backoff_doubles_and_caps(self):
        """Test delays double per attempt and stop at the cap."""
        config = OperationConfig(base_delay=2.0, max_backoff_delay=10.0)
        assert [config.backoff_delay(n) for n in range(1, 6)] == [2.0, 4.0, 8.0, 10.0, 10.0]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"max_poll_attempts": 0},
            {"poll_backoff_factor": 0.5},
            {"rate_limit_min_delay": 3.0, "rate_limit_max_delay": 1.0},
            {"overall_timeout": 0},
        ],
    )
    def test_rejects_invalid(self, kwargs):
        """Test invalid settings fail at construction."""
        with pytest.raises(ValueError):
            OperationConfig(**kwargs)


class TestTransformSnapshot:
    """Test payload shapes accepted by the transform."""

    def test_product_document(self):
        """Test the product document shape."""
        result = transform_snapshot(product_document(review_count=3), "T1", duration_ms=40)

        assert result.product.title == "Wireless Earbuds"
        assert result.product.price.current == 49.99
        assert result.reviews[0].images == ["https://img.test/0.jpg"]
        assert result.reviews[0].verified is True
        assert result.reviews[0].product_id == "T1"
        assert result.metadata.duration_ms == 40

    def test_review_rows(self):
        """Test the flat review-row shape."""
        rows = [
            {
                "product_id": "T9",
                "product_name": "Desk Lamp",
                "product_rating": 4.1,
                "product_rating_count": 310,
                "review_id": "RX1",
                "review_header": "Bright",
                "review_text": "Works well.",
                "rating": 4,
                "author_name": "Sam",
                "is_verified": True,
                "helpful_count": 2,
            },
            {"product_id": "T9", "id": "RX2", "rating": 2},
        ]

        result = transform_snapshot(rows, "T9", duration_ms=5)

        assert result.product.id == "T9"
        assert result.product.rating.total == 310
        assert [r.id for r in result.reviews] == ["RX1", "RX2"]
        assert result.reviews[1].author.name == "Anonymous"
        assert result.metadata.total_reviews == 310

    def test_empty_payload(self):
        """Test an empty payload raises PARSING."""
        with pytest.raises(ClassifiedError) as info:
            transform_snapshot([], "T1", duration_ms=0)
        assert info.value.kind == ErrorKind.PARSING
