"""
Per-user, per-action rate limits

Counters live in Django's cache (Redis in production) so every worker
process sees the same counts.
"""
import logging
import time

from django.conf import settings
from django.core.cache import cache
from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import BaseThrottle

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window counter: at most `limit` hits per `window` seconds for `key`"""

    def __init__(self, key, window, limit):
        self.key = key
        self.window = int(window)
        self.limit = int(limit)
        self.count = 0

    def _bucket(self, now=None):
        now = time.time() if now is None else now
        return f'lifelink:ratelimit:{self.key}:{int(now // self.window)}'

    def hit(self, now=None):
        """Count one attempt; True while the caller is within the limit"""
        bucket = self._bucket(now)
        if cache.add(bucket, 1, timeout=self.window):
            self.count = 1
        else:
            try:
                self.count = cache.incr(bucket)
            except ValueError:
                # bucket expired between add and incr
                cache.add(bucket, 1, timeout=self.window)
                self.count = 1
        return self.count <= self.limit

    def remaining(self):
        return max(0, self.limit - self.count)

    def retry_after(self, now=None):
        now = time.time() if now is None else now
        return self.window - (now % self.window)


class ActionRateThrottle(BaseThrottle):
    """
    Throttle write requests by the view's `rate_limit_action`, using the
    (limit, window) pair configured in LIFELINK_RATE_LIMITS
    """

    def __init__(self):
        self.limiter = None

    def allow_request(self, request, view):
        action = getattr(view, 'rate_limit_action', None)
        if not action or request.method in SAFE_METHODS:
            return True

        configured = settings.LIFELINK_RATE_LIMITS.get(action)
        if not configured:
            return True

        limit, window = configured
        user = request.user
        ident = f'user:{user.pk}' if user and user.is_authenticated else f'ip:{self.get_ident(request)}'
        self.limiter = RateLimiter(f'{action}:{ident}', window, limit)

        if self.limiter.hit():
            return True
        logger.warning(f"Rate limit hit: {action} by {ident} ({self.limiter.count}/{limit} in {window}s)")
        return False

    def wait(self):
        return self.limiter.retry_after() if self.limiter else None
