import json
import unittest
from unittest.mock import MagicMock

import redis

from database.recognition_cache import CachedRecognition, InMemoryRecognitionCache, RedisRecognitionCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestInMemoryRecognitionCache(unittest.TestCase):
    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = InMemoryRecognitionCache(clock=clock)
        cache.set("h", CachedRecognition(text="t", pages=1), ttl=300)
        clock.now = 299.0
        self.assertEqual(cache.get("h").text, "t")
        clock.now = 300.0
        self.assertIsNone(cache.get("h"))
        self.assertEqual(len(cache), 0)

    def test_bounded(self):
        cache = InMemoryRecognitionCache(max_entries=2)
        for key in ("a", "b", "c"):
            cache.set(key, CachedRecognition(text=key))
        self.assertIsNone(cache.get("a"))
        self.assertEqual(cache.get("c").text, "c")

    def test_each_entry_keeps_its_own_ttl(self):
        clock = FakeClock()
        cache = InMemoryRecognitionCache(clock=clock)
        cache.set("short", CachedRecognition(text="s"), ttl=10)
        cache.set("long", CachedRecognition(text="l"), ttl=300)
        clock.now = 11.0
        self.assertIsNone(cache.get("short"))
        self.assertEqual(cache.get("long").text, "l")
        self.assertEqual(len(cache), 1)

    def test_recently_read_entry_survives_eviction(self):
        cache = InMemoryRecognitionCache(max_entries=2)
        cache.set("a", CachedRecognition(text="a"))
        cache.set("b", CachedRecognition(text="b"))
        cache.get("a")
        cache.set("c", CachedRecognition(text="c"))
        self.assertIsNone(cache.get("b"))
        self.assertEqual(cache.get("a").text, "a")

    def test_overwrite_wins(self):
        cache = InMemoryRecognitionCache()
        cache.set("h", CachedRecognition(text="old"))
        cache.set("h", CachedRecognition(text="new"))
        self.assertEqual(cache.get("h").text, "new")


class TestRedisRecognitionCache(unittest.TestCase):
    def test_set_uses_expiry(self):
        client = MagicMock()
        RedisRecognitionCache(client).set("abc", CachedRecognition(text="t", pages=2), ttl=300)
        key, value = client.set.call_args.args
        self.assertEqual(key, "recognition:abc")
        self.assertEqual(json.loads(value), {"text": "t", "pages": 2})
        self.assertEqual(client.set.call_args.kwargs["ex"], 300)

    def test_get_round_trip(self):
        client = MagicMock()
        client.get.return_value = json.dumps({"text": "hello", "pages": 1})
        self.assertEqual(RedisRecognitionCache(client).get("abc"), CachedRecognition(text="hello", pages=1))

    def test_miss_and_errors(self):
        client = MagicMock()
        client.get.return_value = None
        self.assertIsNone(RedisRecognitionCache(client).get("abc"))
        client.get.side_effect = redis.ConnectionError("down")
        self.assertIsNone(RedisRecognitionCache(client).get("abc"))
        client.set.side_effect = redis.ConnectionError("down")
        RedisRecognitionCache(client).set("abc", CachedRecognition(text="t"))


if __name__ == "__main__":
    unittest.main()
