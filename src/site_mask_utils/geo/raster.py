"""Raster reading, writing, cropping and alignment utilities."""

import logging
import gc
import math
from pathlib import Path
from typing import Tuple, Union
from pyproj import Transformer
import rasterio
from rasterio.windows import Window, from_bounds
from rasterio.windows import transform as window_transform
from rasterio.warp import reproject, Resampling, transform_bounds
import numpy as np

from site_mask_utils.configs import constants
from site_mask_utils.core.utils import get_memory_mb, make_dirs_if_not_exists
from site_mask_utils.geo.grid import Grid, RasterLayer, grids_match

RESAMPLING_METHODS = {
    "bilinear": Resampling.bilinear,
    "nearest": Resampling.nearest,
}

def resolve_resampling(method: Union[str, Resampling]) -> Resampling:
    """
    Bilinear for continuous fields (depth, probability), nearest for categorical data.
    """
    if isinstance(method, Resampling):
        if method not in RESAMPLING_METHODS.values():
            raise ValueError(f"Unsupported resampling method: {method}")
        return method
    try:
        return RESAMPLING_METHODS[str(method).lower()]
    except KeyError:
        raise ValueError(
            f"Unknown resampling method '{method}', expected one of {sorted(RESAMPLING_METHODS)}"
        ) from None

def estimate_window_size_gb(window: Window, dtype_bytes: int = 4) -> float:
    """
    Estimate the memory size of a raster window in gigabytes.

    Args:
        window: Rasterio window object
        dtype_bytes: Number of bytes per cell (default: 4 for float32)

    Returns:
        float: Estimated size in GB
    """
    return (window.width * window.height * dtype_bytes) / (1024 * 1024 * 1024)


def read_raster_window_chunked(
    raster: rasterio.DatasetReader,
    window: Window,
    band: int = 1,
    max_size_gb: float = None,
    chunk_height: int = None
) -> np.ndarray:
    """
    Read a raster window in chunks to avoid memory issues with large windows.

    Args:
        raster: Open rasterio dataset reader
        window: Window to read from the raster
        band: Band number to read (default: 1)
        max_size_gb: Maximum window size in GB before chunking (default: from constants)
        chunk_height: Height of each chunk in rows (default: from constants)

    Returns:
        np.ndarray: Array containing the windowed raster data
    """
    if max_size_gb is None:
        max_size_gb = constants.MAX_WINDOW_SIZE_GB
    if chunk_height is None:
        chunk_height = constants.CHUNK_HEIGHT

    window_size_gb = estimate_window_size_gb(window, np.dtype(raster.dtypes[band - 1]).itemsize)
    logging.info(f"Estimated window size: {window_size_gb:.2f}GB")

    if window_size_gb > max_size_gb:
        logging.info("Large window detected - reading in chunks")
        chunks = []
        height = int(window.height)

        for row_start in range(0, height, chunk_height):
            chunk_window = Window(
                window.col_off,
                window.row_off + row_start,
                window.width,
                min(chunk_height, height - row_start)
            )

            logging.info(
                f"Reading chunk at row {row_start}/{height} - "
                f"Memory: {get_memory_mb():.0f}MB"
            )
            chunk = raster.read(band, window=chunk_window)
            chunks.append(chunk)

        result = np.vstack(chunks)
        del chunks
        gc.collect()
        return result
    else:
        return raster.read(band, window=window)

def snap_window(
    window: Window, width: int, height: int, pad: int = 0, eps: float = 1e-6
) -> Window:
    """
    Expand a fractional window to whole cells, grow it by `pad` cells on every
    side and clip it to a (width, height) raster.
    """
    col0 = int(math.floor(window.col_off + eps))
    row0 = int(math.floor(window.row_off + eps))
    col1 = int(math.ceil(window.col_off + window.width - eps))
    row1 = int(math.ceil(window.row_off + window.height - eps))
    if col1 <= 0 or row1 <= 0 or col0 >= width or row0 >= height:
        raise ValueError(f"Window {window} does not overlap a {width}x{height} raster")
    col0, row0 = max(0, col0 - pad), max(0, row0 - pad)
    col1, row1 = min(width, col1 + pad), min(height, row1 + pad)
    if col1 <= col0 or row1 <= row0:
        raise ValueError(f"Window {window} does not overlap a {width}x{height} raster")
    return Window(col0, row0, col1 - col0, row1 - row0)

def to_float_nan(arr: np.ndarray, nodata) -> np.ndarray:
    out = arr.astype(constants.OUT_DTYPE)
    if nodata is not None and not np.isnan(nodata):
        out[arr == nodata] = np.nan
    return out

def reproject_raster_to_match(
    source: np.ndarray,
    src_transform,
    src_crs,
    dst_shape: Tuple[int, int],
    dst_transform,
    dst_crs,
    resampling: Resampling = Resampling.nearest
) -> np.ndarray:
    """
    Reproject a float array onto another grid.
    Crash course on reprojection:
    Rasterio creates a new grid in the new CRS.
    For every cell in the new grid, will calculate:
    1. Where the center of that cell is on Earth
    2. Where that location maps to in the source CRS
    3. Which cells cover that location
    4. How to interpolate those cells to get a value for the new cell
    Destination cells with no source coverage stay NaN.

    Args:
        source: Source array to reproject, NaN = no-data
        src_transform: Affine transform of the source array
        src_crs: CRS of the source array
        dst_shape: Shape (height, width) of the destination array
        dst_transform: Affine transform of the destination array
        dst_crs: CRS of the destination array
        resampling: Resampling method to use

    Returns:
        np.ndarray: Reprojected array matching destination geometry
    """
    destination = np.full(dst_shape, np.nan, dtype=constants.OUT_DTYPE)

    reproject(
        source=source.astype(constants.OUT_DTYPE),
        destination=destination,
        src_transform=src_transform,
        src_crs=src_crs,
        src_nodata=np.nan,
        dst_transform=dst_transform,
        dst_crs=dst_crs,
        dst_nodata=np.nan,
        resampling=resampling
    )

    logging.info(f"After reprojection - Memory: {get_memory_mb():.0f}MB")
    return destination

def align_raster(
    layer: RasterLayer,
    grid: Grid,
    resampling: Union[str, Resampling] = "bilinear",
) -> RasterLayer:
    """
    Reproject, crop and resample `layer` onto `grid` in a single warp.
    The result shares `grid` exactly (CRS, extent, resolution, rows, columns).
    """
    method = resolve_resampling(resampling)
    if grids_match(layer.grid, grid):
        return layer.with_data(layer.data.copy())

    logging.info(
        f"Aligning '{layer.name}' {layer.grid.width}x{layer.grid.height} ({layer.grid.crs}) "
        f"-> {grid.width}x{grid.height} ({grid.crs}) with {method.name}"
    )
    data = reproject_raster_to_match(
        source=layer.data,
        src_transform=layer.grid.transform,
        src_crs=layer.grid.crs,
        dst_shape=grid.shape,
        dst_transform=grid.transform,
        dst_crs=grid.crs,
        resampling=method,
    )
    return RasterLayer(grid=grid, data=data, name=layer.name)

def align_dataset(
    ds: rasterio.io.DatasetReader,
    grid: Grid,
    band: int = 1,
    resampling: Union[str, Resampling] = "bilinear",
    name: str = None,
) -> RasterLayer:
    """
    Read only the part of `ds` covering `grid`, then align it onto `grid`.

    Bilinear needs the source cells around each target cell center, including
    those just outside the covering window, so the window gets a margin of
    one cell plus the number of source cells per target cell.
    """
    method = resolve_resampling(resampling)
    src_bounds = transform_bounds(grid.crs, ds.crs, *grid.bounds)
    covering = from_bounds(*src_bounds, transform=ds.transform)
    pad = 0
    if method is not Resampling.nearest:
        pad = 1 + int(math.ceil(max(covering.width / grid.width, covering.height / grid.height)))
    window = snap_window(covering, ds.width, ds.height, pad=pad)
    logging.info(f"Reading window {window} of {ds.name} - Memory: {get_memory_mb():.0f}MB")

    subset = read_raster_window_chunked(ds, window, band=band)
    src_grid = Grid(
        crs=ds.crs,
        transform=ds.window_transform(window),
        width=subset.shape[1],
        height=subset.shape[0],
    )
    layer = RasterLayer(
        grid=src_grid,
        data=to_float_nan(subset, ds.nodata),
        name=name or Path(ds.name).stem,
    )
    del subset
    gc.collect()
    return align_raster(layer, grid, resampling=method)

def crop_layer(layer: RasterLayer, bounds: Tuple[float, float, float, float]) -> RasterLayer:
    """
    Crop to the whole-cell window covering `bounds` (west, south, east, north),
    given in the layer's own CRS.
    """
    window = snap_window(
        from_bounds(*bounds, transform=layer.grid.transform), layer.grid.width, layer.grid.height
    )
    r0, c0 = int(window.row_off), int(window.col_off)
    h, w = int(window.height), int(window.width)
    grid = Grid(
        crs=layer.grid.crs,
        transform=window_transform(window, layer.grid.transform),
        width=w,
        height=h,
    )
    return RasterLayer(grid=grid, data=layer.data[r0:r0 + h, c0:c0 + w].copy(), name=layer.name)

def read_raster(path: Union[str, Path], band: int = 1) -> RasterLayer:
    """
    Read one band of a raster file; source nodata becomes NaN.
    """
    with rasterio.open(path) as ds:
        data = ds.read(band)
        return RasterLayer(
            grid=Grid.from_dataset(ds),
            data=to_float_nan(data, ds.nodata),
            name=Path(path).stem,
        )

def write_raster(layer: RasterLayer, out_path: Union[str, Path]) -> Path:
    """
    Write a layer as a single-band float32 GeoTIFF with NaN nodata.
    """
    out_path = Path(out_path)
    make_dirs_if_not_exists(out_path.parent)
    profile = {
        'driver': 'GTiff',
        'height': layer.grid.height,
        'width': layer.grid.width,
        'count': 1,
        'dtype': constants.OUT_DTYPE,
        'crs': layer.grid.crs,
        'transform': layer.grid.transform,
        'nodata': np.nan,
    }
    with rasterio.open(out_path, 'w', **profile) as dst:
        dst.write(layer.data.astype(constants.OUT_DTYPE), 1)
    logging.info(f"Wrote {layer.name} -> {out_path}")
    return out_path

def grid_center_longlat(
    grid: Grid,
    out_epsg: int = 4326,
) -> Tuple[float, float]:
    """
    Returns (long, lat) of the grid center.
    """
    x_center, y_center = rasterio.transform.xy(
        grid.transform, grid.height / 2.0, grid.width / 2.0, offset="ul"
    )

    if grid.crs is None or grid.crs.to_epsg() == out_epsg:
        return float(x_center), float(y_center)

    transformer = Transformer.from_crs(grid.crs, f"EPSG:{out_epsg}", always_xy=True)
    long, lat = transformer.transform(x_center, y_center)
    return float(long), float(lat)
