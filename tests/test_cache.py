import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from cortex.cache import ProcessingCache
from cortex.frame import Frame


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


FRAME = Frame('answer', content='x')


class TestProcessingCache(unittest.TestCase):

    def test_bound_holds_after_overflow(self):
        cache = ProcessingCache(max_entries=500)
        for i in range(501):
            cache.put(f"k{i}", FRAME)
        self.assertEqual(len(cache), 500)
        self.assertNotIn("k0", cache)
        self.assertIn("k500", cache)

    def test_hit_count_increments(self):
        cache = ProcessingCache()
        cache.put("k", FRAME)
        cache.get("k")
        entry = cache.get("k")
        self.assertEqual(entry.hit_count, 2)
        self.assertEqual(entry.output_frame, FRAME)

    def test_miss_returns_none(self):
        self.assertIsNone(ProcessingCache().get("nope"))

    def test_ttl_checked_on_read(self):
        clock = FakeClock()
        cache = ProcessingCache(max_entries=10, ttl_seconds=100, time_fn=clock)
        cache.put("k", FRAME)
        clock.now = 100
        self.assertIsNotNone(cache.get("k"))
        clock.now = 101
        self.assertIsNone(cache.get("k"))
        self.assertEqual(len(cache), 0)

    def test_least_recently_used_evicted(self):
        cache = ProcessingCache(max_entries=2)
        cache.put("a", FRAME)
        cache.put("b", FRAME)
        cache.get("a")
        cache.put("c", FRAME)
        self.assertIn("a", cache)
        self.assertNotIn("b", cache)

    def test_overwrite_does_not_evict(self):
        cache = ProcessingCache(max_entries=2)
        cache.put("a", FRAME)
        cache.put("b", FRAME)
        cache.put("a", Frame('answer', content='y'))
        self.assertEqual(len(cache), 2)
        self.assertEqual(cache.get("a").output_frame['content'], 'y')

    def test_info_lists_at_most_ten_entries(self):
        cache = ProcessingCache()
        for i in range(12):
            cache.put(f"k{i}", FRAME)
        cache.get("k0")
        info = cache.info()
        self.assertEqual(info["size"], 12)
        self.assertEqual(len(info["entries"]), 10)
        self.assertEqual(info["entries"][0], {"key": "k1", "hitCount": 0})

    def test_clear(self):
        cache = ProcessingCache()
        cache.put("k", FRAME)
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_rejects_zero_capacity(self):
        with self.assertRaises(ValueError):
            ProcessingCache(max_entries=0)
