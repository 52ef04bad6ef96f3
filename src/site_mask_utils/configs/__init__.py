"""Configuration constants for raster alignment and masking."""

from .constants import (
    MAX_WINDOW_SIZE_GB,
    CHUNK_HEIGHT,
    MASK_PASS,
    MASK_FAIL,
)

from .ds_constants import *

__all__ = [
    "MAX_WINDOW_SIZE_GB",
    "CHUNK_HEIGHT",
    "MASK_PASS",
    "MASK_FAIL",
    "SUITABILITY_THRESHOLD",
    "PRESENCE_EXCLUDE_ABOVE",
    "Substrate",
    "SUITABLE_SUBSTRATES",
    "SBC_TEMPLATE_BBOX",
    "SBC_TEMPLATE_RES",
    "SBC_TEMPLATE_CRS",
    "OCCURRENCE_API_TOKEN_ENV",
    "OCCURRENCE_PAGE_PARAM",
    "DEFICIENT_CATEGORIES",
]
