"""Vector layer cleaning and vector-to-raster masking."""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import geopandas as gpd
import numpy as np
from rasterio.features import rasterize
from shapely.geometry import box

from site_mask_utils.configs.constants import MASK_PASS, MASK_FAIL, OUT_DTYPE
from site_mask_utils.geo.grid import Grid, RasterLayer

def read_vector(
    path: Union[str, Path],
    bbox: Optional[Tuple[float, float, float, float]] = None,
) -> gpd.GeoDataFrame:
    """
    Read a shapefile / GeoJSON / GeoPackage. `bbox` filters features on read.
    """
    gdf = gpd.read_file(path, bbox=bbox)
    logging.info(f"Read {len(gdf)} features from {path} ({gdf.crs})")
    return gdf

def drop_null_empty_invalid(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    gdf = gdf[gdf.geometry.notnull()]
    gdf = gdf[~gdf.geometry.is_empty]
    gdf = gdf[gdf.is_valid]
    return gdf

def clean_gdf(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Apply zero-width buffer to clean invalid geometries in a GeoDataFrame.
    """
    gdf = gdf.copy()
    gdf["geometry"] = gdf.geometry.buffer(0)
    return drop_null_empty_invalid(gdf)

def rasterize_gdf_to_array(gdf: gpd.GeoDataFrame, grid: Grid, all_touched: bool = False) -> np.ndarray:
    """
    Rasterize polygons onto a grid.

    Args:
      gdf: GeoDataFrame of polygons (land, protected areas, substrate patches)
      grid: Target grid
      all_touched: Burn every cell a geometry touches, not only cells whose center it covers
    Returns:
      mask: 2D numpy uint8 array where covered = 1, uncovered = 0
    """
    if gdf.crs is None:
        raise ValueError("Vector layer has no CRS; cannot reproject to grid")

    # Reproject polygons to grid CRS
    gdf_in_grid_crs = drop_null_empty_invalid(gdf.to_crs(grid.crs))

    # Clip to grid bounds (in grid CRS)
    grid_geom = box(*grid.bounds)
    gdf_clip = gdf_in_grid_crs[gdf_in_grid_crs.intersects(grid_geom)]

    # Nothing intersecting grid
    if gdf_clip.empty:
        return np.zeros(grid.shape, dtype=np.uint8)

    clipped = gdf_clip.geometry.intersection(grid_geom)
    clipped = clipped[clipped.notnull() & ~clipped.is_empty]
    if clipped.empty:
        return np.zeros(grid.shape, dtype=np.uint8)

    return rasterize(
        ((geom, 1) for geom in clipped),
        out_shape=grid.shape,
        transform=grid.transform,
        fill=0,
        all_touched=all_touched,
        dtype="uint8"
    )

def rasterize_vector_mask(
    gdf: gpd.GeoDataFrame,
    grid: Grid,
    exclude: bool = True,
    all_touched: bool = False,
    name: Optional[str] = None,
) -> RasterLayer:
    """
    Binary mask from a vector layer on `grid`.

    exclude=True (land, protected areas): covered cells fail, uncovered cells pass.
    exclude=False (inclusion layers): covered cells pass, uncovered cells fail.
    Geometries smaller than a cell can miss every cell center and vanish.
    """
    burned = rasterize_gdf_to_array(clean_gdf(gdf), grid, all_touched=all_touched)
    covered = burned == 1
    passes = ~covered if exclude else covered
    data = np.where(passes, MASK_PASS, MASK_FAIL).astype(OUT_DTYPE)
    logging.info(
        f"Vector mask '{name}': {int(covered.sum())} covered cells of {covered.size} "
        f"({'excluded' if exclude else 'included'})"
    )
    return RasterLayer(grid=grid, data=data, name=name)
