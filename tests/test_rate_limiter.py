"""
tests/test_rate_limiter.py

Per-shop cooldown used for discovery triggers.
"""

from __future__ import annotations

import pytest

from shopgauge.rate_limiter import ShopCooldown


@pytest.fixture()
def cooldown(clock) -> ShopCooldown:
    return ShopCooldown(cooldown_seconds=300, clock=clock)


class TestShopCooldown:
    def test_first_trigger_is_allowed(self, cooldown) -> None:
        assert cooldown.acquire("a.myshopify.com")
        assert cooldown.remaining("a.myshopify.com") == 300

    def test_second_trigger_inside_window_is_refused(self, cooldown, clock) -> None:
        cooldown.acquire("a.myshopify.com")
        clock.advance(120)
        assert not cooldown.acquire("a.myshopify.com")
        assert cooldown.remaining("a.myshopify.com") == 180

    def test_allowed_again_after_window(self, cooldown, clock) -> None:
        cooldown.acquire("a.myshopify.com")
        clock.advance(300)
        assert cooldown.acquire("a.myshopify.com")

    def test_shops_are_independent_and_case_insensitive(self, cooldown) -> None:
        assert cooldown.acquire("A.myshopify.com ")
        assert not cooldown.acquire("a.myshopify.com")
        assert cooldown.acquire("b.myshopify.com")

    def test_reset_releases_shop(self, cooldown) -> None:
        cooldown.acquire("a.myshopify.com")
        cooldown.reset("a.myshopify.com")
        assert cooldown.remaining("a.myshopify.com") == 0.0
        assert cooldown.acquire("a.myshopify.com")
