from pulse_recs.recommend.cache import RecommendationCache, recommendation_cache_key


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_set_then_get_within_ttl():
    clock = FakeClock()
    cache = RecommendationCache(clock=clock)
    cache.set("k", ["v"], 1)
    assert cache.get("k") == ["v"]


def test_expired_entry_is_miss_and_removed():
    clock = FakeClock()
    cache = RecommendationCache(clock=clock)
    cache.set("k", "v", 1)
    clock.advance(1)
    assert cache.get("k") is None
    assert "k" not in cache
    assert len(cache) == 0


def test_default_ttl_is_one_hour():
    clock = FakeClock()
    cache = RecommendationCache(clock=clock)
    cache.set("k", "v")
    clock.advance(3599)
    assert cache.get("k") == "v"
    clock.advance(1)
    assert cache.get("k") is None


def test_delete_and_clear():
    cache = RecommendationCache(clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.clear()
    assert len(cache) == 0


def test_cleanup_only_removes_expired():
    clock = FakeClock()
    cache = RecommendationCache(clock=clock)
    cache.set("short", 1, 10)
    cache.set("long", 2, 100)
    clock.advance(50)
    assert cache.cleanup() == 1
    assert "short" not in cache
    assert cache.get("long") == 2


def test_cache_keys_distinct_per_filter():
    keys = {
        recommendation_cache_key("u1"),
        recommendation_cache_key("u1", genre="reggae"),
        recommendation_cache_key("u1", style="reggae"),
        recommendation_cache_key("u1", genre="reggae", style="dub"),
        recommendation_cache_key("u1", scope="today"),
        recommendation_cache_key("u1", genre="reggae", scope="today"),
        recommendation_cache_key("u1", scope="weekend"),
    }
    assert len(keys) == 7


def test_cache_key_format():
    assert recommendation_cache_key("u1", "reggae", "dub", "all") == "rec:u1:g:reggae:s:dub:scope:all"
    assert recommendation_cache_key("u1") == "rec:u1"


def test_invalidate_user_leaves_other_users():
    cache = RecommendationCache(clock=FakeClock())
    cache.set(recommendation_cache_key("u1", scope="all"), 1)
    cache.set(recommendation_cache_key("u1", genre="jazz", scope="today"), 2)
    cache.set(recommendation_cache_key("u10", scope="all"), 3)

    assert cache.invalidate_user("u1") == 2
    assert cache.get(recommendation_cache_key("u10", scope="all")) == 3
