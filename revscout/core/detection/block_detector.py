"""Block detection for revscout.

Inspects fetched pages and responses for signs of anti-bot denial.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional
from urllib.parse import urlparse

from revscout.core.errors import ClassifiedError
from revscout.core.logging import logger
from revscout.core.operation_config import ErrorKind

DEFAULT_CAPTCHA_MARKERS = (
    'action="/errors/validateCaptcha"',
    "action='/errors/validateCaptcha'",
    "/errors/validateCaptcha",
    'id="captchacharacters"',
)

DEFAULT_DENIAL_PHRASES = (
    "To discuss automated access to Amazon data please contact",
    "Sorry, we just need to make sure you're not a robot",
    "Enter the characters you see below",
    "Type the characters you see in this image",
    "Your request could not be completed",
    "Why have I been blocked?",
    "not a robot",
    "Bot Check",
    "automated access",
    "unusual activity",
)

DEFAULT_SUSPICIOUS_TITLES = ("Robot Check", "Sorry!")

DEFAULT_SIGNIN_PATHS = ("/signin", "/ap/signin")

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class BlockVerdict:
    """Outcome of an inspection: clear, or blocked with a reason."""

    blocked: bool
    reason: Optional[str] = None

    @classmethod
    def clear(cls) -> "BlockVerdict":
        return cls(blocked=False)

    @classmethod
    def block(cls, reason: str) -> "BlockVerdict":
        return cls(blocked=True, reason=reason)

    def __bool__(self) -> bool:
        return self.blocked


class BlockDetector:
    """Detects CAPTCHA forms, denial phrasing and unrequested sign-in redirects.

    Checks run in a fixed order and stop at the first match:
    1. CAPTCHA / validation form markers
    2. Denial phrases in the body (and suspicious page titles)
    3. Current URL on a sign-in path that was not requested
    """

    def __init__(
        self,
        denial_phrases: Optional[Iterable[str]] = None,
        captcha_markers: Optional[Iterable[str]] = None,
        signin_paths: Optional[Iterable[str]] = None,
        suspicious_titles: Optional[Iterable[str]] = None,
    ):
        self.denial_phrases: List[str] = list(
            DEFAULT_DENIAL_PHRASES if denial_phrases is None else denial_phrases
        )
        self.captcha_markers: List[str] = list(
            DEFAULT_CAPTCHA_MARKERS if captcha_markers is None else captcha_markers
        )
        self.signin_paths: List[str] = list(
            DEFAULT_SIGNIN_PATHS if signin_paths is None else signin_paths
        )
        self.suspicious_titles: List[str] = list(
            DEFAULT_SUSPICIOUS_TITLES if suspicious_titles is None else suspicious_titles
        )

    def inspect(
        self,
        content: Optional[str],
        url: Optional[str] = None,
        requested_url: Optional[str] = None,
    ) -> BlockVerdict:
        """Inspect page content and the URL it was served from.

        Args:
            content: Page HTML or response body text
            url: URL the content was finally served from (after redirects)
            requested_url: URL the caller asked for

        Returns:
            BlockVerdict.clear() or BlockVerdict.block(reason)
        """
        body = content or ""

        for marker in self.captcha_markers:
            if marker in body:
                return BlockVerdict.block(f"CAPTCHA form detected ({marker})")

        for phrase in self.denial_phrases:
            if phrase in body:
                return BlockVerdict.block(f"Denial phrase detected: {phrase}")

        title_match = _TITLE_RE.search(body)
        if title_match:
            title = title_match.group(1).strip()
            for suspicious in self.suspicious_titles:
                if suspicious in title:
                    return BlockVerdict.block(f"Suspicious page title: {title}")

        if url and self._is_signin(url) and not (
            requested_url and self._is_signin(requested_url)
        ):
            return BlockVerdict.block(f"Redirected to sign-in page: {url}")

        return BlockVerdict.clear()

    def inspect_response(self, response: Any) -> BlockVerdict:
        """Inspect an httpx.Response, comparing final URL with the request URL."""
        try:
            text = response.text
        except UnicodeDecodeError:
            text = ""
        try:
            final_url = str(response.request.url)
        except RuntimeError:
            # Response built without a request (tests, cached bodies)
            return self.inspect(text)
        requested = str(response.history[0].request.url) if response.history else final_url
        return self.inspect(text, url=final_url, requested_url=requested)

    async def inspect_page(self, page: Any, requested_url: Optional[str] = None) -> BlockVerdict:
        """Inspect a Playwright page."""
        content = await page.content()
        return self.inspect(content, url=page.url, requested_url=requested_url)

    def raise_if_blocked(self, verdict: BlockVerdict, **context: Any) -> None:
        """Translate a positive verdict into a Blocked ClassifiedError.

        Raises:
            ClassifiedError: With kind BLOCKED if the verdict is positive
        """
        if not verdict.blocked:
            return
        logger.warning("block_detected", reason=verdict.reason, **context)
        raise ClassifiedError(
            ErrorKind.BLOCKED,
            f"Access blocked: {verdict.reason}",
            context={"reason": verdict.reason, **context},
        )

    def _is_signin(self, url: str) -> bool:
        path = urlparse(url).path or url
        return any(p in path for p in self.signin_paths)
