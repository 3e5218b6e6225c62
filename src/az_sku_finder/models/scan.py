"""Request models for scans and recommendations.

Every field is optional except the recommendation target; unset fields
fall back to :class:`az_sku_finder.settings.FinderSettings`.
"""

from pydantic import BaseModel, Field


class ScanRequest(BaseModel):
    """Which regions to scan and how."""

    subscriptionId: str | None = None
    tenantId: str | None = None
    regions: list[str] = Field(default_factory=list)
    name: str | None = None
    family: str | None = None
    includePrices: bool | None = None
    currencyCode: str | None = None
    maxConcurrency: int | None = Field(None, ge=1)


class RecommendRequest(ScanRequest):
    """Find substitutes for *targetSku* across the scanned regions."""

    targetSku: str
    topN: int | None = Field(None, ge=1)
    minVcpus: int | None = Field(None, ge=0)
    minMemoryGB: float | None = Field(None, ge=0)
