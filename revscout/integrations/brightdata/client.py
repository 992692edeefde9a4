"""Asynchronous scrape-job client for revscout.

Drives the trigger -> poll -> fetch protocol against a remote scraping service,
with response caching, rate limiting, session rotation and backoff retries.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx
from pydantic import ValidationError

from revscout.config import Config
from revscout.core.caching import ResponseCache
from revscout.core.errors import ClassifiedError
from revscout.core.execution import BackoffRetrier, ErrorClassifier, run_with_deadline
from revscout.core.logging import logger
from revscout.core.operation_config import ErrorKind, OperationConfig
from revscout.core.session import RateLimiter, SessionManager, SessionResource
from revscout.integrations.brightdata.endpoints import JobEndpoints, build_target
from revscout.integrations.brightdata.transform import transform_snapshot
from revscout.models.jobs import Job, JobPhase, JobStatus
from revscout.models.reviews import ReviewScrapeResult, ScrapeOptions

Transform = Callable[[Any, str, int], ReviewScrapeResult]


class AsyncJobClient(SessionResource):
    """Client for an asynchronous scrape-job service.

    One fetch walks Idle -> Submitted -> Polling -> {Completed, Failed, TimedOut}.
    The whole submit/poll/fetch sequence runs inside a BackoffRetrier, and a
    successful result is cached under the request fingerprint so identical
    requests within the TTL skip the state machine entirely.

    The HTTP client is the session resource: rotation closes it and opens a new
    one, dropping pooled connections and cookies.
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[OperationConfig] = None,
        endpoints: Optional[JobEndpoints] = None,
        base_url: Optional[str] = None,
        cache: Optional[ResponseCache[ReviewScrapeResult]] = None,
        classifier: Optional[ErrorClassifier] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transform: Transform = transform_snapshot,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize AsyncJobClient.

        Args:
            api_key: Bearer token for the job service
            config: OperationConfig (defaults if omitted)
            endpoints: Wire layout (generic layout if omitted)
            base_url: Service base URL
            cache: ResponseCache to use (one is built from config.cache_ttl if omitted)
            classifier: ErrorClassifier for raw failures
            rate_limiter: RateLimiter for request spacing (built from config if omitted)
            transform: Callable turning (payload, target_id, duration_ms) into a result
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleep: Awaitable sleep used for poll intervals and backoff waits
            clock: Monotonic time source

        Raises:
            ValueError: If api_key is missing
        """
        if not api_key:
            raise ValueError("BrightData API key is required")
        self.api_key = api_key
        self.config = config or OperationConfig()
        self.endpoints = endpoints or JobEndpoints.generic()
        self.base_url = base_url or Config.brightdata_base_url()
        self.cache: ResponseCache[ReviewScrapeResult] = cache or ResponseCache(
            self.config.cache_ttl, clock=clock
        )
        self.classifier = classifier or ErrorClassifier()
        self.retrier = BackoffRetrier(self.config, self.classifier, sleep=sleep)
        self.session = SessionManager(
            self,
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
        self._transform = transform
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> "AsyncJobClient":
        """Build a BrightData client from environment configuration.

        Raises:
            ValueError: If the API key or dataset ID is missing
        """
        kwargs.setdefault("config", Config.operation_config())
        kwargs.setdefault("endpoints", JobEndpoints.brightdata(Config.brightdata_dataset_id() or ""))
        return cls(Config.brightdata_api_key() or "", **kwargs)

    # Session resource

    async def initialize(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.config.request_timeout,
            transport=self._transport,
        )
        logger.debug("job_client_opened", base_url=self.base_url)

    async def teardown(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.debug("job_client_closed")

    async def close(self) -> None:
        """Close the HTTP session."""
        await self.session.close()

    async def __aenter__(self) -> "AsyncJobClient":
        await self.session.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Public surface

    async def fetch_result(
        self, target_id: str, options: Optional[ScrapeOptions] = None
    ) -> ReviewScrapeResult:
        """Fetch reviews for ``target_id``, from cache when possible.

        Args:
            target_id: Product identifier (ASIN)
            options: ScrapeOptions; ``options.timeout`` overrides config.overall_timeout

        Returns:
            ReviewScrapeResult

        Raises:
            ClassifiedError: Exactly one classified failure
        """
        options = options or ScrapeOptions()
        key = self.cache_key(target_id, options)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info("job_result_cached", target_id=target_id)
            return cached

        timeout = options.timeout or self.config.overall_timeout
        result = await run_with_deadline(
            self._fetch_uncached(target_id, options),
            timeout,
            operation=f"Fetching reviews for {target_id}",
        )
        self.cache.put(key, result)
        return result

    def clear_cache(self, key: Optional[str] = None) -> None:
        """Clear one cached result, or all of them."""
        self.cache.clear(key)

    @staticmethod
    def cache_key(target_id: str, options: ScrapeOptions) -> str:
        return options.fingerprint(target_id)

    # Protocol

    async def _fetch_uncached(self, target_id: str, options: ScrapeOptions) -> ReviewScrapeResult:
        await self.session.before_request()
        try:
            return await self.retrier.execute(
                lambda: self._run_job(target_id, options),
                context={"target_id": target_id},
            )
        finally:
            await self.session.after_request()

    async def _run_job(self, target_id: str, options: ScrapeOptions) -> ReviewScrapeResult:
        started = self._clock()
        job = await self._submit(target_id, options)
        payload = await self._poll(job, options)
        duration_ms = int((self._clock() - started) * 1000)
        try:
            result = self._transform(payload, target_id, duration_ms)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise ClassifiedError(
                ErrorKind.PARSING,
                f"Failed to parse result of job {job.id}: {e}",
                e,
                {"job_id": job.id, "target_id": target_id},
            ) from e
        logger.info(
            "job_result_fetched",
            job_id=job.id,
            target_id=target_id,
            reviews=len(result.reviews),
            duration_ms=duration_ms,
        )
        return result

    async def _submit(self, target_id: str, options: ScrapeOptions) -> Job:
        logger.info("job_submitting", target_id=target_id)
        response = await self._request(
            "POST",
            self.endpoints.trigger_path,
            phase="submit",
            params=self.endpoints.trigger_params,
            json=self.endpoints.trigger_body(build_target(target_id, options)),
        )
        body = self._json_body(
            response,
            ErrorKind.UNKNOWN,
            "Job service returned an unreadable trigger response",
            {"phase": "submit", "target_id": target_id},
        )
        job_id = body.get(self.endpoints.job_id_field) if isinstance(body, dict) else None
        if not job_id:
            raise ClassifiedError(
                ErrorKind.UNKNOWN,
                f"Failed to get {self.endpoints.job_id_field} from job service",
                context={"target_id": target_id},
            )
        job = Job(id=str(job_id))
        logger.info("job_submitted", job_id=job.id, target_id=target_id)
        return job

    async def _poll(self, job: Job, options: ScrapeOptions) -> Any:
        """Poll until the job is ready, then fetch its payload.

        Raises:
            ClassifiedError: BLOCKED from a poll, UNKNOWN when the job failed,
                NETWORK after too many consecutive poll errors, TIMEOUT when
                the poll ceiling is reached while still running
        """
        cfg = self.config
        job.advance(JobPhase.POLLING)
        interval = cfg.poll_interval
        interval_cap = max(cfg.max_poll_interval, cfg.poll_interval)
        consecutive_errors = 0

        while job.poll_attempts < cfg.max_poll_attempts:
            await self._sleep(interval)
            interval = min(interval * cfg.poll_backoff_factor, interval_cap)
            job.poll_attempts += 1

            try:
                status, reason = await self._check_status(job)
            except ClassifiedError as e:
                if e.kind == ErrorKind.BLOCKED:
                    raise
                consecutive_errors += 1
                logger.warning(
                    "job_poll_error",
                    job_id=job.id,
                    attempt=job.poll_attempts,
                    consecutive=consecutive_errors,
                    kind=e.kind.value,
                    error=e.message,
                )
                if consecutive_errors >= cfg.max_consecutive_poll_errors:
                    raise ClassifiedError(
                        ErrorKind.NETWORK,
                        f"Status of job {job.id} unavailable for {consecutive_errors} consecutive polls",
                        e,
                        {"job_id": job.id},
                    ) from e
                continue

            consecutive_errors = 0
            logger.info(
                "job_polled",
                job_id=job.id,
                attempt=job.poll_attempts,
                max_attempts=cfg.max_poll_attempts,
                status=status.value,
            )

            if status == JobStatus.READY:
                payload = await self._fetch_snapshot(job, options)
                job.mark_ready(payload)
                return payload

            if status == JobStatus.FAILED:
                job.mark_failed(reason)
                logger.error("job_failed", job_id=job.id, reason=reason)
                raise ClassifiedError(
                    ErrorKind.UNKNOWN,
                    f"Scraping job {job.id} failed: {reason or 'No reason provided'}",
                    context={"job_id": job.id, "reason": reason},
                )

        job.advance(JobPhase.TIMED_OUT)
        logger.warning("job_timed_out", job_id=job.id, polls=job.poll_attempts)
        raise ClassifiedError(
            ErrorKind.TIMEOUT,
            f"Job {job.id} still running after {job.poll_attempts} polls",
            context={"job_id": job.id, "polls": job.poll_attempts},
        )

    async def _check_status(self, job: Job) -> Tuple[JobStatus, Optional[str]]:
        response = await self._request(
            "GET", self.endpoints.status_url(job.id), phase="status", job_id=job.id
        )
        context = {"phase": "status", "job_id": job.id}
        message = f"Unreadable status for job {job.id}"
        data = self._json_body(response, ErrorKind.PARSING, message, context)
        try:
            return JobStatus.parse(data.get("status")), data.get("reason")
        except (ValueError, AttributeError) as e:
            raise ClassifiedError(ErrorKind.PARSING, message, e, context) from e

    async def _fetch_snapshot(self, job: Job, options: ScrapeOptions) -> Any:
        response = await self._request(
            "GET",
            self.endpoints.result_url(job.id),
            phase="result",
            job_id=job.id,
            params=self.endpoints.result_params(options),
        )
        return self._json_body(
            response,
            ErrorKind.PARSING,
            f"Unreadable result for job {job.id}",
            {"phase": "result", "job_id": job.id},
        )

    def _json_body(
        self, response: httpx.Response, kind: ErrorKind, message: str, context: Dict[str, Any]
    ) -> Any:
        """Decode a 2xx JSON body; a non-JSON body is checked for a block page first.

        Raises:
            ClassifiedError: BLOCKED if the body is a challenge page, else ``kind``
        """
        try:
            return response.json()
        except ValueError as e:
            detector = self.classifier.detector
            detector.raise_if_blocked(detector.inspect_response(response), **context)
            raise ClassifiedError(kind, message, e, context) from e

    async def _request(
        self, method: str, url: str, phase: str, job_id: Optional[str] = None, **kwargs: Any
    ) -> httpx.Response:
        """Issue one HTTP call, classifying any failure.

        Raises:
            ClassifiedError: On transport failure or non-2xx status
        """
        if self._http is None:
            await self.session.start()
        context: Dict[str, Any] = {"phase": phase}
        if job_id:
            context["job_id"] = job_id
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise self.classifier.classify(e, context) from e
        return response
