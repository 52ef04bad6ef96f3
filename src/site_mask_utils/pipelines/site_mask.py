from __future__ import annotations
import gc
import logging
from pathlib import Path
from typing import Any, Dict, List

import rasterio

from site_mask_utils.pipelines.config import SiteMaskConfig
from site_mask_utils.core.masks import (
    category_mask,
    composite_criteria_mask,
    exclusion_mask,
    threshold_mask,
)
from site_mask_utils.core.filters import count_valid_cells, valid_fraction
from site_mask_utils.core.utils import get_memory_mb, make_dirs_if_not_exists
from site_mask_utils.geo.grid import Grid, RasterLayer, template_grid
from site_mask_utils.geo.raster import align_dataset, grid_center_longlat, write_raster
from site_mask_utils.geo.vector import rasterize_vector_mask, read_vector
from site_mask_utils.geo.render import save_layer_png

def _align_path(path, grid: Grid, resampling: str, name: str) -> RasterLayer:
    with rasterio.open(path) as ds:
        return align_dataset(ds, grid, resampling=resampling, name=name)

def build_criteria(cfg: SiteMaskConfig, grid: Grid):
    """
    Returns (criteria masks, suitability value layers), all on `grid`.
    """
    criteria: List[RasterLayer] = []
    values: List[RasterLayer] = []

    for season, path in sorted(cfg.suitability_paths.items()):
        suitability = _align_path(path, grid, "bilinear", f"suitability_{season}")
        values.append(suitability)
        criteria.append(threshold_mask(suitability, cfg.suitability_threshold))

    for label, path in (("land", cfg.land_path), ("protected", cfg.protected_path)):
        if path is not None:
            criteria.append(rasterize_vector_mask(read_vector(path), grid, exclude=True, name=label))

    if cfg.presence_path is not None:
        presence = _align_path(cfg.presence_path, grid, "nearest", "presence")
        criteria.append(exclusion_mask(presence, cfg.presence_exclude_above))

    if cfg.substrate_path is not None:
        substrate = _align_path(cfg.substrate_path, grid, "nearest", "substrate")
        criteria.append(category_mask(substrate, cfg.suitable_substrates))

    return criteria, values

def run_site_mask(cfg: SiteMaskConfig) -> Dict[str, Any]:
    """
    General pattern:
    build the template grid
    turn every input (vector or raster) into a pass/fail mask on that grid
    AND the masks together
    keep the mean seasonal suitability on cells that passed everything
    write the result and return a summary
    """
    out_dir = Path(cfg.out_dir)
    make_dirs_if_not_exists(out_dir)
    grid = template_grid(cfg.crs, cfg.bbox, cfg.res)
    long, lat = grid_center_longlat(grid)
    logging.info(
        f"Starting site mask {cfg.out_name} on {grid.width}x{grid.height} grid "
        f"centered at ({long:.4f}, {lat:.4f})"
    )

    criteria, values = build_criteria(cfg, grid)
    if not criteria:
        raise ValueError("Config defines no criteria; set suitability_paths or a mask layer")

    result = composite_criteria_mask(criteria, values=values or None)
    result.name = cfg.out_name
    del criteria, values
    gc.collect()
    logging.info(f"After compositing - Memory: {get_memory_mb():.0f}MB")

    tif_path = write_raster(result, out_dir / f"{cfg.out_name}.tif")
    png_path = None
    if cfg.write_png:
        png_path = save_layer_png(result, out_dir / f"{cfg.out_name}.png", title=cfg.out_name)

    summary = {
        "name": cfg.out_name,
        "width": grid.width,
        "height": grid.height,
        "passing_cells": count_valid_cells(result),
        "valid_fraction": valid_fraction(result),
        "raster_path": str(tif_path),
        "png_path": str(png_path) if png_path is not None else None,
    }
    logging.info(f"Finished {cfg.out_name}: {summary['passing_cells']} passing cells")
    return summary
