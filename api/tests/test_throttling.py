from django.core.cache import cache
from django.test import SimpleTestCase

from api.throttling import RateLimiter


class RateLimiterTests(SimpleTestCase):

    def setUp(self):
        cache.clear()

    def test_limit_within_window(self):
        limiter = RateLimiter('create_requisition:user:1', window=3600, limit=2)
        now = 7200.0

        self.assertTrue(limiter.hit(now))
        self.assertEqual(limiter.remaining(), 1)
        self.assertTrue(limiter.hit(now + 10))
        self.assertFalse(limiter.hit(now + 20))
        self.assertEqual(limiter.remaining(), 0)
        self.assertEqual(limiter.retry_after(now + 20), 3580)

    def test_new_window_resets(self):
        limiter = RateLimiter('respond:user:1', window=60, limit=1)
        self.assertTrue(limiter.hit(120))
        self.assertFalse(limiter.hit(150))
        self.assertTrue(limiter.hit(180))

    def test_keys_are_independent(self):
        first = RateLimiter('respond:user:1', window=60, limit=1)
        second = RateLimiter('respond:user:2', window=60, limit=1)
        self.assertTrue(first.hit(0))
        self.assertTrue(second.hit(0))
