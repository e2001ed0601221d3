"""Tests for the TTL cache."""

from src.chat.cache import TTLCache


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_get_returns_value_until_expiry() -> None:
    clock = _Clock()
    cache = TTLCache(clock=clock)
    cache.set("k", "v", ttl=10)

    assert cache.get("k") == "v"
    clock.now += 9.9
    assert "k" in cache
    clock.now += 0.1
    assert cache.get("k") is None
    assert "k" not in cache


def test_add_if_absent_is_check_and_set() -> None:
    clock = _Clock()
    cache = TTLCache(clock=clock)

    assert cache.add_if_absent("msg", ttl=600) is True
    assert cache.add_if_absent("msg", ttl=600) is False
    clock.now += 601
    assert cache.add_if_absent("msg", ttl=600) is True


def test_set_overwrites_and_extends() -> None:
    clock = _Clock()
    cache = TTLCache(clock=clock)
    cache.set("k", "a", ttl=5)
    clock.now += 4
    cache.set("k", "b", ttl=5)
    clock.now += 4

    assert cache.get("k") == "b"


def test_missing_key() -> None:
    assert TTLCache().get("nope") is None
