"""Pydantic models for SKU availability scanning and recommendations.

Core models (resource specs, restrictions, profiles, classification) use
snake_case.  Rows handed to the presentation / export layer use camelCase
like the rest of the API responses.

All models are value objects built fresh per scan and never mutated.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from az_sku_finder.errors import RegionFetchError

# ARM ``reasonCode`` for restrictions that apply to the subscription rather
# than to physical capacity.
SUBSCRIPTION_REASON_CODE = "NotAvailableForSubscription"


class Status(StrEnum):
    """Definitive availability of a SKU in one region."""

    available = "Available"
    zone_constrained = "ZoneConstrained"
    subscription_limited = "SubscriptionLimited"
    partial_zone = "PartialZone"
    unavailable = "Unavailable"


# ---------------------------------------------------------------------------
# Core models
# ---------------------------------------------------------------------------


class RestrictionRecord(BaseModel):
    """One entry of a SKU's ARM ``restrictions`` array."""

    model_config = ConfigDict(frozen=True)

    type: str = "Zone"
    reason_code: str | None = None
    zones: tuple[str, ...] = ()

    @property
    def is_zone_scoped(self) -> bool:
        return self.type == "Zone"

    @property
    def is_subscription_limited(self) -> bool:
        return self.reason_code == SUBSCRIPTION_REASON_CODE


class ResourceProfile(BaseModel):
    """Reduced view of a SKU used by the similarity scorer."""

    model_config = ConfigDict(frozen=True)

    vcpus: int = 0
    memory_gb: float = 0.0
    family: str = ""
    generations: tuple[str, ...] = ()
    architecture: str = "x64"
    premium_io: bool = False


# The scorer compares a target against candidates of the same shape.
TargetProfile = ResourceProfile
CandidateProfile = ResourceProfile


class ResourceSpec(BaseModel):
    """A compute SKU as listed for one region.

    *family* is the ARM quota family (``standardESv5Family``); *family_code*
    is the short series letter(s) taken from the SKU name (``E``).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    family: str = ""
    family_code: str = ""
    vcpus: int = 0
    memory_gb: float = 0.0
    generations: tuple[str, ...] = ()
    architecture: str = "x64"
    premium_io: bool = False
    zones: tuple[str, ...] = ()
    restrictions: tuple[RestrictionRecord, ...] = ()
    image_compatible: bool | None = None

    def profile(self) -> ResourceProfile:
        return ResourceProfile(
            vcpus=self.vcpus,
            memory_gb=self.memory_gb,
            family=self.family_code,
            generations=self.generations,
            architecture=self.architecture,
            premium_io=self.premium_io,
        )


class AvailabilityStatus(BaseModel):
    """Classified status plus the three disjoint zone sets it was derived from."""

    model_config = ConfigDict(frozen=True)

    status: Status
    zones_ok: tuple[str, ...] = ()
    zones_limited: tuple[str, ...] = ()
    zones_restricted: tuple[str, ...] = ()
    non_zonal: bool = False

    @property
    def declared_zones(self) -> tuple[str, ...]:
        return tuple(sorted({*self.zones_ok, *self.zones_limited, *self.zones_restricted}))


class ClassifiedResource(BaseModel):
    """A resource spec paired with its classification for one region."""

    model_config = ConfigDict(frozen=True)

    region: str
    spec: ResourceSpec
    availability: AvailabilityStatus


class QuotaUsage(BaseModel):
    """vCPU quota for one family in one region.  ``None`` means unknown."""

    model_config = ConfigDict(frozen=True)

    limit: int | None = None
    used: int | None = None

    @property
    def available(self) -> int | None:
        if self.limit is None or self.used is None:
            return None
        return self.limit - self.used


class RankingCandidate(BaseModel):
    """One (SKU, region) pair offered to the recommendation ranker."""

    model_config = ConfigDict(frozen=True)

    name: str
    region: str
    profile: ResourceProfile
    availability: AvailabilityStatus
    price: float | None = None
    location_restricted: bool = False


# ---------------------------------------------------------------------------
# Region fetch records
# ---------------------------------------------------------------------------


class RegionScanResult(BaseModel):
    """Isolated output of one region worker, merged after all workers join.

    *error* is the message reported per region; *failure* keeps the typed
    :class:`RegionFetchError` (region and cause) for in-process callers.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    region: str
    resources: list[ResourceSpec] = Field(default_factory=list)
    quotas: dict[str, QuotaUsage] = Field(default_factory=dict)
    error: str | None = None
    failure: RegionFetchError | None = Field(default=None, exclude=True, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None


class PricingResult(BaseModel):
    """Hourly prices for one region and the backend that produced them."""

    region: str
    source: str = "none"  # "negotiated" | "retail" | "none"
    currency: str = "USD"
    prices: dict[str, float] = Field(default_factory=dict)
    warning: str | None = None


# ---------------------------------------------------------------------------
# Presentation rows
# ---------------------------------------------------------------------------


class FamilyRollup(BaseModel):
    """Per-region, per-family comparison row."""

    family: str
    region: str
    totalCount: int
    availableCount: int
    representative: str
    representativeVcpus: int
    representativeMemoryGB: float
    status: Status
    zonesOkCount: int
    zonesLimitedCount: int
    zonesRestrictedCount: int
    quotaLimit: int | None = None
    quotaUsed: int | None = None
    quotaAvailable: int | None = None
    price: float | None = None


class ResourceDetail(BaseModel):
    """Per-resource detail row."""

    name: str
    family: str
    region: str
    vcpus: int
    memoryGB: float
    status: Status
    zonesOk: list[str] = Field(default_factory=list)
    zonesLimited: list[str] = Field(default_factory=list)
    zonesRestricted: list[str] = Field(default_factory=list)
    nonZonal: bool = False
    locationRestricted: bool = False
    quotaAvailable: int | None = None
    price: float | None = None
    generations: list[str] = Field(default_factory=list)
    architecture: str = "x64"
    imageCompatible: bool | None = None


class ScoredCandidate(BaseModel):
    """A ranked substitute."""

    name: str
    region: str
    profile: ResourceProfile
    score: int
    availability: AvailabilityStatus
    okZoneCount: int
    price: float | None = None
    locationRestricted: bool = False


class RecommendationResult(BaseModel):
    """Ranked substitutes for a target SKU plus the smaller-alternative callout."""

    target: str
    targetProfile: ResourceProfile
    recommendations: list[ScoredCandidate] = Field(default_factory=list)
    smallerAlternatives: list[ScoredCandidate] = Field(default_factory=list)
    belowSpecCount: int = 0
    minVcpus: int | None = None
    minMemoryGB: float | None = None
    errors: dict[str, str] = Field(default_factory=dict)


class ScanReport(BaseModel):
    """Merged result of a multi-region scan."""

    regions: list[str] = Field(default_factory=list)
    resources: list[ClassifiedResource] = Field(default_factory=list)
    rollups: list[FamilyRollup] = Field(default_factory=list)
    details: list[ResourceDetail] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
    pricingSource: dict[str, str] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
