"""Geospatial utilities for grids, raster alignment and vector masks."""

from .grid import (
    Grid,
    RasterLayer,
    build_template,
    template_grid,
    grids_match,
)
from .raster import (
    align_raster,
    align_dataset,
    crop_layer,
    read_raster,
    write_raster,
    read_raster_window_chunked,
    reproject_raster_to_match,
)
from .vector import rasterize_vector_mask, read_vector
from .datum import apply_vertical_correction, mosaic_tiles

__all__ = [
    "Grid",
    "RasterLayer",
    "build_template",
    "template_grid",
    "grids_match",
    "align_raster",
    "align_dataset",
    "crop_layer",
    "read_raster",
    "write_raster",
    "read_raster_window_chunked",
    "reproject_raster_to_match",
    "rasterize_vector_mask",
    "read_vector",
    "apply_vertical_correction",
    "mosaic_tiles",
]
