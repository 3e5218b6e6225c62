"""Exception hierarchy shared by the fetch layer and the core services."""

from __future__ import annotations


class SkuFinderError(Exception):
    """Base class for all az-sku-finder errors."""


class TransientApiError(SkuFinderError):
    """A throttled or temporarily unavailable remote call.

    Raised by collaborators that do not surface :class:`requests.HTTPError`
    directly.  *retry_after* carries a server-provided ``Retry-After`` value
    in seconds when one was sent.
    """

    def __init__(
        self, message: str, *, status_code: int | None = None, retry_after: float | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class PermissionDeniedError(SkuFinderError):
    """The credential may not read the requested resource (HTTP 401/403)."""


class PricingNotFoundError(SkuFinderError):
    """No price sheet exists for the billing scope (HTTP 404)."""


class RegionFetchError(SkuFinderError):
    """Fetching one region failed; recorded on that region's result."""

    def __init__(self, region: str, cause: BaseException) -> None:
        super().__init__(f"{region}: {cause}")
        self.region = region
        self.cause = cause


class MalformedInputError(SkuFinderError, ValueError):
    """User input does not resolve to anything that was scanned."""


class ContextResolutionError(SkuFinderError):
    """No subscription or region context could be established before scanning."""
