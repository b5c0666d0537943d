"""
Container health check: exits 0 when the ShopGauge API answers its
health summary, 1 otherwise.
"""

from __future__ import annotations

from shopgauge.clients import ApiError, build_api_clients


def main() -> int:
    health = build_api_clients().health
    try:
        summary = health.summary()
    except ApiError:
        return 1
    return 1 if summary.is_degraded else 0


if __name__ == "__main__":
    raise SystemExit(main())
