from typing import Optional
import numpy as np

from site_mask_utils.core.masks import get_valid_mask
from site_mask_utils.geo.grid import RasterLayer

def fraction_from_mask(
    binary_mask: np.ndarray,
    valid_pixels: np.ndarray,
    target_value: int = 1
) -> float:
    """
    Calculate the fraction of target cells in a binary mask.

    Args:
        binary_mask: Binary mask array where target_value indicates target cells
        valid_pixels: Array indicating valid cells; True for valid, False for nodata
        target_value: Value in the mask representing the target class (default: 1)
    """
    valid_count = int(valid_pixels.sum())
    if valid_count == 0:
        return 0.0
    return float(((binary_mask == target_value) & valid_pixels).sum() / valid_count)

def calculate_threshold_fraction(
    data: np.ndarray,
    filter_value: float,
    nodata: Optional[float] = None,
    *,
    greater: bool = True,
    strict: bool = False,
) -> float:
    """
    Generic: fraction of valid cells satisfying data >= filter_value (or <= filter_value).
    """
    valid = get_valid_mask(data, nodata=nodata)
    with np.errstate(invalid="ignore"):
        if greater:
            if strict:
                satisfied = data > filter_value
            else:
                satisfied = data >= filter_value
        else:
            if strict:
                satisfied = data < filter_value
            else:
                satisfied = data <= filter_value

    return fraction_from_mask(satisfied, valid, target_value=True)

def count_valid_cells(layer: RasterLayer) -> int:
    return int(layer.valid.sum())

def valid_fraction(layer: RasterLayer) -> float:
    """
    Fraction of the layer's cells that hold a value (0.0 to 1.0).
    """
    total = layer.data.size
    if total == 0:
        return 0.0
    return count_valid_cells(layer) / total
