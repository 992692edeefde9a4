"""Session and rate limiting module for revscout."""

from revscout.core.session.rate_limiter import RateLimiter
from revscout.core.session.session_manager import Session, SessionManager, SessionResource

__all__ = ["RateLimiter", "Session", "SessionManager", "SessionResource"]
