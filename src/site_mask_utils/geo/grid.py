"""Grid and raster layer types, plus the template raster builder."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Set, Tuple, Union

import numpy as np
import rasterio
from rasterio.crs import CRS as RioCRS
from rasterio.transform import Affine, array_bounds, from_origin

from site_mask_utils.configs.constants import CRS, OUT_DTYPE

CRSLike = Union[str, int, CRS, RioCRS]


def to_rio_crs(crs: CRSLike) -> RioCRS:
    """
    Coerce an EPSG int, "EPSG:xxxx" string, CRS enum, or rasterio CRS to a rasterio CRS.
    """
    if isinstance(crs, RioCRS):
        return crs
    if isinstance(crs, CRS):
        return RioCRS.from_epsg(int(crs))
    if isinstance(crs, int):
        return RioCRS.from_epsg(crs)
    return RioCRS.from_user_input(crs)


@dataclass(frozen=True)
class Grid:
    """
    Cell geometry shared by every layer taking part in a mask or compare:
    reference system, affine transform (origin + cell size) and row/column count.
    """
    crs: RioCRS
    transform: Affine
    width: int
    height: int

    @classmethod
    def from_dataset(cls, ds: rasterio.io.DatasetReader) -> "Grid":
        return cls(crs=ds.crs, transform=ds.transform, width=ds.width, height=ds.height)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(west, south, east, north), rasterio ordering."""
        return array_bounds(self.height, self.width, self.transform)

    @property
    def res(self) -> Tuple[float, float]:
        return (abs(self.transform.a), abs(self.transform.e))


@dataclass
class RasterLayer:
    """
    A grid plus one float value per cell. NaN marks no-data.
    """
    grid: Grid
    data: np.ndarray
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.data.shape != self.grid.shape:
            raise ValueError(
                f"Layer data shape {self.data.shape} does not match grid shape {self.grid.shape}"
            )

    @property
    def valid(self) -> np.ndarray:
        return np.isfinite(self.data)

    @property
    def nodata_cells(self) -> Set[Tuple[int, int]]:
        rows, cols = np.nonzero(~self.valid)
        return set(zip(rows.tolist(), cols.tolist()))

    def with_data(self, data: np.ndarray, name: Optional[str] = None) -> "RasterLayer":
        return RasterLayer(grid=self.grid, data=data, name=name if name is not None else self.name)


def grids_match(a: Grid, b: Grid, tol: float = 1e-9) -> bool:
    """
    True when both grids share reference system, extent, resolution and row/column count.
    """
    if a.crs != b.crs:
        return False
    if a.width != b.width or a.height != b.height:
        return False
    if not np.allclose(a.res, b.res, rtol=0, atol=tol):
        return False
    return bool(np.allclose(a.bounds, b.bounds, rtol=0, atol=tol))


def require_same_grid(*layers: RasterLayer) -> Grid:
    if not layers:
        raise ValueError("At least one layer is required")
    grid = layers[0].grid
    for layer in layers[1:]:
        if not grids_match(grid, layer.grid):
            raise ValueError(
                f"Layer '{layer.name}' is not on the same grid as '{layers[0].name}'; "
                f"align it first"
            )
    return grid


def _cells_along(span: float, res: float) -> int:
    # round half up, e.g. 92.5 cells -> 93
    return max(1, int(math.floor(span / res + 0.5)))


def template_grid(
    crs: CRSLike,
    bbox: Sequence[float],
    res: Union[float, Tuple[float, float]],
) -> Grid:
    """
    Build a grid anchored at the (west, north) corner of bbox.

    Args:
        crs: Reference system bbox is expressed in
        bbox: (west, east, south, north)
        res: Cell size, either a single value or (xres, yres)

    Returns:
        Grid: Cell counts are rounded to the nearest whole cell, so east/south
        may shift by less than one cell while the resolution stays exact.
    """
    if len(bbox) != 4:
        raise ValueError(f"bbox must be (west, east, south, north), got {bbox}")
    west, east, south, north = map(float, bbox)
    xres, yres = (res, res) if np.isscalar(res) else res
    xres, yres = float(xres), float(yres)
    if west >= east or south >= north:
        raise ValueError(f"Degenerate bbox {bbox}")
    if xres <= 0 or yres <= 0:
        raise ValueError(f"Resolution must be positive, got {res}")

    width = _cells_along(east - west, xres)
    height = _cells_along(north - south, yres)
    return Grid(
        crs=to_rio_crs(crs),
        transform=from_origin(west, north, xres, yres),
        width=width,
        height=height,
    )


def build_template(
    crs: CRSLike,
    bbox: Sequence[float],
    res: Union[float, Tuple[float, float]],
    fill: float = 1.0,
    name: str = "template",
) -> RasterLayer:
    """
    Template raster with every cell set to `fill`.
    """
    grid = template_grid(crs, bbox, res)
    logging.info(
        f"Template grid {grid.width}x{grid.height} at res {grid.res} in {grid.crs}"
    )
    return RasterLayer(grid=grid, data=np.full(grid.shape, fill, dtype=OUT_DTYPE), name=name)
