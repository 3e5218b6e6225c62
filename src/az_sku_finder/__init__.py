"""Azure SKU Finder."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("az-sku-finder")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
