"""Unit tests for the TTL caches and match-request signatures."""

import pytest

from tasklink.cache import (
    MatchCache,
    MatchSnapshot,
    RemoteTaskCache,
    SettingsCache,
    TimedCache,
    compute_signature,
    unique_issue_ids,
)
from tasklink.todoist.models import RemoteTask


class TestSignature:
    def test_order_and_duplicates_do_not_matter(self):
        hints = {"b": "Second", "a": "First"}

        assert compute_signature(["b", "a", "a"], hints) == compute_signature(["a", "b"], hints)

    def test_exact_format(self):
        assert compute_signature(["b", "a"], {"a": "Boom"}) == "a|b::a:Boom|b:"

    def test_changing_a_hint_changes_signature(self):
        base = compute_signature(["42"], {"42": "Undefined index"})

        assert compute_signature(["42"], {"42": "Undefined offset"}) != base

    def test_only_hint_excerpt_counts(self):
        long_a = "x" * 120 + "tail one"
        long_b = "x" * 120 + "tail two"

        assert compute_signature(["1"], {"1": long_a}) == compute_signature(["1"], {"1": long_b})
        assert compute_signature(["1"], {"1": long_a}, excerpt_length=125) != compute_signature(
            ["1"], {"1": long_b}, excerpt_length=125
        )

    def test_unique_issue_ids_cleans_input(self):
        assert unique_issue_ids([" 2 ", "1", "", "  ", None, 3, "1"]) == ["1", "2"]


class TestTimedCache:
    def test_fresh_strictly_before_ttl(self, fake_clock):
        cache = TimedCache("t", ttl_seconds=20, clock=fake_clock)
        cache.store("k", "v")

        fake_clock.advance(19.5)
        assert cache.lookup("k") == "v"

        fake_clock.advance(0.5)
        assert cache.lookup("k") is None

    def test_key_mismatch_is_miss(self, fake_clock):
        cache = TimedCache("t", ttl_seconds=20, clock=fake_clock)
        cache.store("k", "v")

        assert cache.lookup("other") is None
        assert cache.misses == 1

    def test_explicit_fetched_at(self, fake_clock):
        cache = TimedCache("t", ttl_seconds=20, clock=fake_clock)
        cache.store("k", "v", fetched_at=fake_clock() - 15)

        fake_clock.advance(5)
        assert cache.lookup("k") is None

    def test_stats(self, fake_clock):
        cache = TimedCache("t", ttl_seconds=20, clock=fake_clock)
        cache.lookup("k")
        cache.store("k", "v")
        cache.lookup("k")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 50.0
        assert stats["populated"] is True

    def test_invalidate(self, fake_clock):
        cache = TimedCache("t", ttl_seconds=20, clock=fake_clock)
        cache.store("k", "v")
        cache.invalidate()

        assert cache.entry is None
        assert cache.lookup("k") is None


class TestSpecializedCaches:
    def test_remote_cache_tracks_credential(self, fake_clock):
        cache = RemoteTaskCache(clock=fake_clock)
        assert cache.credential == ""

        cache.store("token", [RemoteTask(id="1")])
        assert cache.credential == "token"
        assert cache.ttl_seconds == 90

    def test_match_cache_holds_snapshot(self, fake_clock):
        cache = MatchCache(clock=fake_clock)
        snapshot = MatchSnapshot(configured=True, matches={"42": []})
        cache.store("sig", snapshot)

        assert cache.lookup("sig") is snapshot
        fake_clock.advance(20)
        assert cache.lookup("sig") is None

    def test_settings_cache_stale_value_still_known(self, fake_clock):
        cache = SettingsCache(clock=fake_clock)
        assert cache.fresh() is None
        assert cache.configured is False

        cache.update(True)
        assert cache.fresh() is True

        fake_clock.advance(30)
        assert cache.fresh() is None
        assert cache.configured is True

        cache.invalidate()
        assert cache.configured is False
