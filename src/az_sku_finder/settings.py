"""Scan settings loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from az_sku_finder.retry import RetryPolicy


class FinderSettings(BaseSettings):
    """Defaults for scans and recommendations.

    Values are read from ``SKU_FINDER_*`` environment variables
    (case-insensitive) and optionally from a ``.env`` file in the working
    directory.  CLI options and API request fields override them per call.
    """

    subscription_id: str = ""
    tenant_id: str = ""
    regions: list[str] = Field(default_factory=list)

    max_retries: int = Field(3, ge=0)
    retry_base_seconds: float = Field(1.0, gt=0)
    max_concurrency: int = Field(4, ge=1)

    top_n: int = Field(5, ge=1)
    min_vcpus: int | None = None
    min_memory_gb: float | None = None

    include_prices: bool = False
    currency_code: str = "USD"

    model_config = SettingsConfigDict(
        env_prefix="SKU_FINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.max_retries, base_seconds=self.retry_base_seconds)


def get_settings() -> FinderSettings:
    return FinderSettings()
