import numpy as np
import pytest
import rasterio
from rasterio.crs import CRS
from rasterio.transform import from_origin

from site_mask_utils.geo.grid import Grid, RasterLayer


@pytest.fixture
def make_grid():
    def _make(west=0.0, north=10.0, res=1.0, width=10, height=10, crs="EPSG:4326"):
        return Grid(
            crs=CRS.from_user_input(crs),
            transform=from_origin(west, north, res, res),
            width=width,
            height=height,
        )
    return _make


@pytest.fixture
def make_layer(make_grid):
    def _make(data, name="layer", **grid_kwargs):
        data = np.asarray(data, dtype="float32")
        grid_kwargs.setdefault("width", data.shape[1])
        grid_kwargs.setdefault("height", data.shape[0])
        return RasterLayer(grid=make_grid(**grid_kwargs), data=data, name=name)
    return _make


@pytest.fixture
def write_tif(tmp_path):
    """Write a single-band GeoTIFF for a grid and return its path."""
    def _write(name, data, grid, nodata=None, dtype="float32"):
        path = tmp_path / name
        data = np.asarray(data, dtype=dtype)
        with rasterio.open(
            path, "w",
            driver="GTiff",
            height=grid.height,
            width=grid.width,
            count=1,
            dtype=dtype,
            crs=grid.crs,
            transform=grid.transform,
            nodata=nodata,
        ) as dst:
            dst.write(data, 1)
        return path
    return _write
