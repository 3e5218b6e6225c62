"""Azure SKU Finder – FastAPI web application.

Thin HTTP surface over the scan / recommendation services.  All data is
returned as JSON; rendering belongs to the client.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from az_sku_finder import __version__
from az_sku_finder.errors import ContextResolutionError, MalformedInputError
from az_sku_finder.models.availability import RestrictionRecord
from az_sku_finder.models.scan import RecommendRequest, ScanRequest
from az_sku_finder.scoring.restrictions import classify_restrictions
from az_sku_finder.services import finder

app = FastAPI(
    title="az-sku-finder API",
    version=__version__,
    description=(
        "REST API for the Azure SKU Finder. "
        "Scans regions for VM SKU availability per zone, rolls results up by "
        "family, and recommends the closest deployable substitutes when a "
        "SKU is restricted."
    ),
    license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Colored logging (reuse uvicorn's formatter)
# ---------------------------------------------------------------------------


def _setup_logging(level: int = logging.WARNING) -> None:
    """Configure the root ``az_sku_finder`` logger with uvicorn-style colours."""
    from uvicorn.logging import DefaultFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(
        DefaultFormatter(fmt="%(levelprefix)s %(name)s - %(message)s", use_colors=True)
    )
    app_logger = logging.getLogger("az_sku_finder")
    app_logger.handlers = [handler]
    app_logger.setLevel(level)
    app_logger.propagate = False

    # Silence noisy third-party loggers
    logging.getLogger("azure").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/api/version", tags=["Meta"], summary="Return the running version")
async def get_version() -> JSONResponse:
    return JSONResponse({"version": __version__})


@app.post("/api/scan", tags=["SKUs"], summary="Scan regions for SKU availability")
def scan(body: ScanRequest) -> JSONResponse:
    """Return per-family rollups and per-SKU detail rows for the requested regions.

    Regions that fail to fetch are reported under ``errors``; the others
    are still returned.
    """
    try:
        report = finder.scan(body)
        return JSONResponse(report.model_dump(mode="json", exclude={"resources"}))
    except ContextResolutionError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception as exc:
        logger.exception("Failed to scan regions")
        return JSONResponse({"error": str(exc)}, status_code=500)


@app.post("/api/recommend", tags=["SKUs"], summary="Recommend substitute SKUs")
def recommend(body: RecommendRequest) -> JSONResponse:
    """Rank the closest deployable substitutes for ``targetSku``.

    Returns 404 when the target is not found in any scanned region.
    """
    try:
        result = finder.recommend(body)
        return JSONResponse(result.model_dump(mode="json"))
    except MalformedInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=404)
    except ContextResolutionError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception as exc:
        logger.exception("Failed to compute recommendations")
        return JSONResponse({"error": str(exc)}, status_code=500)


class ClassifyRequest(BaseModel):
    """Raw zone / restriction data for a single SKU."""

    zones: list[str] = Field(default_factory=list)
    restrictions: list[RestrictionRecord] = Field(default_factory=list)


@app.post("/api/classify", tags=["SKUs"], summary="Classify restriction records")
async def classify(body: ClassifyRequest) -> JSONResponse:
    """Classify a SKU's restriction records without calling Azure."""
    status = classify_restrictions(body.zones, body.restrictions)
    return JSONResponse(status.model_dump(mode="json"))
