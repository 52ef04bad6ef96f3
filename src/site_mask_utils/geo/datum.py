"""Vertical datum correction from geoid-height tiles."""

import logging
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import rasterio
from rasterio.merge import merge
from rasterio.warp import transform_bounds
from shapely.geometry import box

from site_mask_utils.configs.constants import MOSAIC_NODATA, OUT_DTYPE
from site_mask_utils.geo.grid import CRSLike, Grid, RasterLayer, to_rio_crs
from site_mask_utils.geo.raster import to_float_nan, align_raster

PathLike = Union[str, Path]

def tile_footprint(path: PathLike, crs: CRSLike) -> Tuple[float, float, float, float]:
    """Tile bounds (west, south, east, north) expressed in `crs`."""
    with rasterio.open(path) as ds:
        return transform_bounds(ds.crs, to_rio_crs(crs), *ds.bounds)

def select_intersecting_tiles(
    paths: Sequence[PathLike],
    bounds: Tuple[float, float, float, float],
    crs: CRSLike,
) -> List[PathLike]:
    """
    Every tile whose footprint intersects `bounds` (given in `crs`).
    """
    target = box(*bounds)
    selected = [p for p in paths if box(*tile_footprint(p, crs)).intersects(target)]
    logging.info(f"{len(selected)} of {len(paths)} correction tiles intersect {bounds}")
    return selected

def mosaic_tiles(
    paths: Sequence[PathLike],
    bounds: Optional[Tuple[float, float, float, float]] = None,
    band: int = 1,
) -> RasterLayer:
    """
    Mosaic all tiles into one continuous surface. Where tiles overlap the first
    tile in `paths` wins. Covers the union of the tiles unless `bounds` is given.
    """
    if not paths:
        raise ValueError("No tiles to mosaic")
    with ExitStack() as stack:
        datasets = [stack.enter_context(rasterio.open(p)) for p in paths]
        crs = datasets[0].crs
        for ds in datasets[1:]:
            if ds.crs != crs:
                raise ValueError(f"Tile {ds.name} is in {ds.crs}, expected {crs}")
        arr, transform = merge(
            datasets,
            bounds=bounds,
            nodata=MOSAIC_NODATA,
            indexes=[band],
            method="first",
        )
    data = to_float_nan(arr[0], MOSAIC_NODATA)
    grid = Grid(crs=crs, transform=transform, width=data.shape[1], height=data.shape[0])
    logging.info(f"Mosaicked {len(paths)} tiles into {grid.width}x{grid.height} surface")
    return RasterLayer(grid=grid, data=data, name="correction_mosaic")

def apply_vertical_correction(
    elevation: RasterLayer,
    tile_paths: Sequence[PathLike],
) -> RasterLayer:
    """
    Add a geoid-height correction surface to `elevation`.

    All tiles intersecting the elevation extent are mosaicked, the mosaic is
    resampled (bilinear) onto the elevation grid, and the two are added. The
    result keeps the elevation grid, not the tile union.
    """
    tiles = select_intersecting_tiles(tile_paths, elevation.grid.bounds, elevation.grid.crs)
    if not tiles:
        raise ValueError(f"No correction tile intersects elevation extent {elevation.grid.bounds}")

    mosaic = mosaic_tiles(tiles)
    correction = align_raster(mosaic, elevation.grid, resampling="bilinear")

    uncovered = int((elevation.valid & ~correction.valid).sum())
    if uncovered:
        logging.warning(f"{uncovered} elevation cells have no correction coverage; set to nodata")

    corrected = (elevation.data.astype(np.float64) + correction.data).astype(OUT_DTYPE)
    return RasterLayer(grid=elevation.grid, data=corrected, name=f"{elevation.name}_corrected")
