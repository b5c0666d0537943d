"""
Shopify store domain normalisation.
"""

from __future__ import annotations

import re

MYSHOPIFY_SUFFIX = ".myshopify.com"

_STORE_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
_PREFIX_RE = re.compile(r"^(https?://)?(www\.)?")


def normalize_shop_domain(value: str | None) -> str | None:
    """
    Turn merchant input into a canonical `<store>.myshopify.com` domain.

    Accepts a bare store name, a full myshopify domain, or either of those
    pasted as a URL. Returns None when the input cannot be a Shopify store.
    """

    if not value:
        return None

    domain = _PREFIX_RE.sub("", value.strip().lower(), count=1)
    domain = domain.split("/", 1)[0]
    if not domain:
        return None

    store_name = domain[: -len(MYSHOPIFY_SUFFIX)] if domain.endswith(MYSHOPIFY_SUFFIX) else domain
    if not _STORE_NAME_RE.match(store_name):
        return None

    return f"{store_name}{MYSHOPIFY_SUFFIX}"
