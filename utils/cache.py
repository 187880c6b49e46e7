import json
import logging

import redis


class NullCache:
    """ Used when no cache is configured: every lookup is a miss. """

    def get(self, key):
        return None

    def set(self, key, value):
        pass

    def invalidate(self, key):
        pass


class RedisCache:
    """
    Lookaside cache backed by Redis. Values are stored as JSON with a TTL.
    Redis being down only costs latency: errors are logged and reported as misses.
    """

    def __init__(self, client, ttl=3600, logger=None):
        self._client = client
        self._ttl = ttl
        self._log = logger or logging.getLogger('stayhub.cache')

    @classmethod
    def from_url(cls, url, ttl=3600, logger=None):
        client = redis.Redis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        return cls(client, ttl=ttl, logger=logger)

    def get(self, key):
        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            self._log.warning('cache get %s failed: %s', key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            self._log.warning('failed to decode cached value %s: %s', key, exc)
            return None

    def set(self, key, value):
        try:
            self._client.set(key, json.dumps(value), ex=self._ttl or None)
        except redis.RedisError as exc:
            self._log.warning('cache set %s failed: %s', key, exc)

    def invalidate(self, key):
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            self._log.warning('cache invalidate %s failed: %s', key, exc)
