"""SKU name matching shared by the fetch layer and the recommender."""

from __future__ import annotations


def sku_name_matches(filter_val: str, sku_name: str) -> bool:
    """Check if *filter_val* matches *sku_name* with fuzzy multi-part logic.

    First tries a direct substring match.  If that fails and the filter
    contains hyphens or underscores, it splits into parts and checks that all
    parts appear in the SKU name in order.  This lets user-friendly names like
    ``"E64-v5"`` match ARM names like ``Standard_E64s_v5``.

    Both arguments are expected to be lower-cased by the caller.
    """
    if filter_val in sku_name:
        return True
    normalised = filter_val.replace("-", "_")
    if normalised in sku_name:
        return True
    parts = [p for p in normalised.split("_") if p]
    if len(parts) <= 1:
        return False
    pos = 0
    for part in parts:
        idx = sku_name.find(part, pos)
        if idx == -1:
            return False
        pos = idx + len(part)
    return True
