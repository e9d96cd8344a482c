"""
Short-lived read caches for aggregate views (dashboard, blood group stats)

Keys embed a generation number. Any write that can change donor counts
bumps the generation, which orphans every cached aggregate at once; the
orphans age out through their TTL. This works the same on the local
memory and Redis backends, neither of which needs pattern deletes.
"""
import logging
import time

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

GENERATION_KEY = 'lifelink:cache-generation'


def _fresh_generation():
    return int(time.time() * 1000)


def current_generation():
    generation = cache.get(GENERATION_KEY)
    if generation is None:
        cache.add(GENERATION_KEY, _fresh_generation(), timeout=None)
        generation = cache.get(GENERATION_KEY)
    return generation


def make_key(namespace, **params):
    parts = ':'.join(f'{name}={params[name]}' for name in sorted(params))
    return f'lifelink:{namespace}:g{current_generation()}:{parts}'


def ttl_for(namespace):
    return settings.LIFELINK_CACHE_TTLS.get(namespace, 60)


def get_or_compute(namespace, compute, **params):
    key = make_key(namespace, **params)
    value = cache.get(key)
    if value is None:
        value = compute()
        cache.set(key, value, ttl_for(namespace))
    return value


def invalidate(reason=''):
    try:
        cache.incr(GENERATION_KEY)
    except ValueError:
        # generation key evicted or never created
        cache.set(GENERATION_KEY, _fresh_generation(), timeout=None)
    logger.debug(f"LifeLink read caches invalidated ({reason or 'write'})")
