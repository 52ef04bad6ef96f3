from typing import Iterable, Optional, Sequence, Tuple
import logging
import numpy as np

from site_mask_utils.configs.constants import MASK_PASS, MASK_FAIL, OUT_DTYPE
from site_mask_utils.geo.grid import RasterLayer, require_same_grid

# (low, high, new_value)
ReclassRow = Tuple[float, float, float]

def get_valid_mask(
    arr: np.ndarray,
    nodata: Optional[float | int] = None,
) -> np.ndarray:
    """
    Return boolean mask of valid cells in `arr` (finite and not equal to `nodata`).
    If `nodata` is None, only non-finite cells are invalid.
    """
    valid = np.isfinite(arr)
    if nodata is not None:
        return valid & (arr != nodata)
    return valid

def reclassify(
    data: np.ndarray,
    table: Sequence[ReclassRow],
    *,
    right: bool = True,
    others: float = MASK_FAIL,
) -> np.ndarray:
    """
    Map cell values to new values through a (low, high, new) range table.

    Args:
        data: Input cell values, NaN = no-data
        table: Rows of (low, high, new). The first matching row wins.
        right: If True intervals are closed on the right, (low, high];
               otherwise closed on the left, [low, high)
        others: Value for finite cells that match no row

    Returns:
        np.ndarray: float array; no-data cells stay NaN
    """
    data = np.asarray(data, dtype=np.float64)
    out = np.full(data.shape, others, dtype=np.float64)
    finite = np.isfinite(data)
    assigned = np.zeros(data.shape, dtype=bool)
    for low, high, new in table:
        if not low < high:
            raise ValueError(f"Reclassification row ({low}, {high}, {new}) must have low < high")
        if right:
            hit = (data > low) & (data <= high)
        else:
            hit = (data >= low) & (data < high)
        hit &= finite & ~assigned
        out[hit] = new
        assigned |= hit
    out[~finite] = np.nan
    return out.astype(OUT_DTYPE)

def _in_layer_dtype(layer: RasterLayer, value: float) -> float:
    # compare at the layer's precision so a float32 0.4 equals a threshold of 0.4
    if np.issubdtype(layer.data.dtype, np.floating):
        return float(layer.data.dtype.type(value))
    return float(value)

def threshold_mask(layer: RasterLayer, threshold: float) -> RasterLayer:
    """
    Cells scoring above `threshold` pass; cells at or below it fail.
    """
    threshold = _in_layer_dtype(layer, threshold)
    table = [
        (-np.inf, threshold, MASK_FAIL),
        (threshold, np.inf, MASK_PASS),
    ]
    return layer.with_data(reclassify(layer.data, table, right=True), name=f"{layer.name}>{threshold}")

def category_mask(layer: RasterLayer, include: Iterable[float]) -> RasterLayer:
    """
    Cells whose value is one of `include` pass; everything else fails.
    """
    include = list(include)
    out = np.where(np.isin(layer.data, include), MASK_PASS, MASK_FAIL).astype(OUT_DTYPE)
    return layer.with_data(out, name=f"{layer.name} in {include}")

def exclusion_mask(layer: RasterLayer, exclude_above: float = 0) -> RasterLayer:
    """
    Cells with a value above `exclude_above` fail (e.g. prior presence counts).
    No-data cells stay no-data.
    """
    exclude_above = _in_layer_dtype(layer, exclude_above)
    table = [
        (-np.inf, exclude_above, MASK_PASS),
        (exclude_above, np.inf, MASK_FAIL),
    ]
    return layer.with_data(reclassify(layer.data, table, right=True), name=f"{layer.name}<={exclude_above}")

def combine_masks(*masks: RasterLayer) -> RasterLayer:
    """
    Elementwise product of masks; a cell failing any mask is no-data in the result.
    """
    grid = require_same_grid(*masks)
    out = np.full(grid.shape, MASK_PASS, dtype=OUT_DTYPE)
    for m in masks:
        out = out * m.data
    return RasterLayer(grid=grid, data=out.astype(OUT_DTYPE), name="composite_mask")

def mean_over_mask(layers: Sequence[RasterLayer], mask: RasterLayer) -> RasterLayer:
    """
    Cell-wise mean of `layers`, kept only where `mask` passes.
    """
    if not layers:
        raise ValueError("mean_over_mask needs at least one value layer")
    grid = require_same_grid(mask, *layers)
    stack = np.stack([l.data for l in layers]).astype(np.float64)
    mean = stack.mean(axis=0) * mask.data
    return RasterLayer(grid=grid, data=mean.astype(OUT_DTYPE), name="mean_over_mask")

def composite_criteria_mask(
    criteria: Sequence[RasterLayer],
    values: Optional[Sequence[RasterLayer]] = None,
) -> RasterLayer:
    """
    Combine criterion masks with logical AND. If `values` are given, return their
    mean over the cells that passed every criterion instead of the bare mask.
    """
    if not criteria:
        raise ValueError("At least one criterion mask is required")
    mask = combine_masks(*criteria)
    passing = int(np.isfinite(mask.data).sum())
    logging.info(f"Composite of {len(criteria)} criteria: {passing} passing cells")
    if values:
        return mean_over_mask(values, mask)
    return mask
