"""
Structured logging helpers for the ShopGauge client.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from shopgauge.config import get_app_settings


def configure_logging() -> None:
    """
    Configure root logging once for the client process.
    """

    log_level = get_app_settings().log_level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
