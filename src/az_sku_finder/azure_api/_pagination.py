"""ARM pagination helper."""

from __future__ import annotations

import requests


def _paginate(url: str, headers: dict[str, str], timeout: int = 30) -> list[dict]:
    """Fetch all pages from an ARM list endpoint and return the merged values.

    Raises :class:`requests.HTTPError` on the first failing page; callers wrap
    the whole listing in :func:`az_sku_finder.retry.execute_with_retry`.
    """
    items: list[dict] = []
    next_url: str | None = url
    while next_url:
        resp = requests.get(next_url, headers=headers, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
        items.extend(data.get("value", []))
        next_url = data.get("nextLink")
    return items
