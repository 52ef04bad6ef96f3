import numpy as np
from site_mask_utils.core.masks import get_valid_mask
from site_mask_utils.configs.constants import OUT_DTYPE
from site_mask_utils.geo.grid import RasterLayer, require_same_grid

def finite_values(arr: np.ndarray) -> np.ndarray:
    """Flat array of the finite cells only."""
    arr = np.asarray(arr)
    return arr[np.isfinite(arr)]

def normalized_difference(
    a: np.ndarray,
    b: np.ndarray,
    nodata: float = None,
) -> np.ndarray:
    """
    (a - b) / (a + b), e.g. NDVI with a = NIR and b = red.
    Cells where either band is invalid or a + b == 0 are NaN.
    """
    a = a.astype(np.float64)
    b = b.astype(np.float64)
    valid = get_valid_mask(a, nodata=nodata) & get_valid_mask(b, nodata=nodata)
    denom = a + b
    valid &= denom != 0

    out = np.full(a.shape, np.nan, dtype=np.float64)
    out[valid] = (a[valid] - b[valid]) / denom[valid]
    return out.astype(OUT_DTYPE)

def ndvi_layer(nir: RasterLayer, red: RasterLayer) -> RasterLayer:
    grid = require_same_grid(nir, red)
    return RasterLayer(grid=grid, data=normalized_difference(nir.data, red.data), name="ndvi")
