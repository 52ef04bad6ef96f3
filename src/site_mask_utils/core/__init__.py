"""Core masking, statistics and index utilities."""

from .utils import get_memory_mb
from .masks import (
    reclassify,
    threshold_mask,
    category_mask,
    exclusion_mask,
    combine_masks,
    mean_over_mask,
    composite_criteria_mask,
)
from .filters import (
    calculate_threshold_fraction,
    count_valid_cells,
    valid_fraction,
)
from .transforms import normalized_difference, ndvi_layer

__all__ = [
    "get_memory_mb",
    "reclassify",
    "threshold_mask",
    "category_mask",
    "exclusion_mask",
    "combine_masks",
    "mean_over_mask",
    "composite_criteria_mask",
    "calculate_threshold_fraction",
    "count_valid_cells",
    "valid_fraction",
    "normalized_difference",
    "ndvi_layer",
]
