import numpy as np
import pytest

from site_mask_utils.geo.datum import (
    apply_vertical_correction,
    mosaic_tiles,
    select_intersecting_tiles,
)
from site_mask_utils.geo.grid import RasterLayer, grids_match


@pytest.fixture
def geoid_tiles(make_grid, write_tif):
    """Four 1x1 degree tiles along the equator at 0.25 deg, offsets 10, 20, 30 and a far-off 99."""
    tiles = {}
    for name, west, value in (("a", 0.0, 10.0), ("b", 1.0, 20.0), ("c", 2.0, 30.0), ("far", 5.0, 99.0)):
        grid = make_grid(west=west, north=1.0, res=0.25, width=4, height=4)
        tiles[name] = write_tif(f"geoid_{name}.tif", np.full(grid.shape, value), grid, nodata=np.nan)
    return tiles


@pytest.fixture
def elevation(make_grid):
    grid = make_grid(west=0.25, north=0.75, res=0.1, width=15, height=5)
    return RasterLayer(grid=grid, data=np.full(grid.shape, 100.0, dtype="float32"), name="bathy")


def test_select_only_intersecting(geoid_tiles, elevation):
    paths = list(geoid_tiles.values())
    selected = select_intersecting_tiles(paths, elevation.grid.bounds, elevation.grid.crs)
    assert selected == [geoid_tiles["a"], geoid_tiles["b"]]


def test_mosaic_spans_union(geoid_tiles):
    mosaic = mosaic_tiles([geoid_tiles["a"], geoid_tiles["b"]])
    assert mosaic.grid.shape == (4, 8)
    assert np.allclose(mosaic.grid.bounds, (0.0, 0.0, 2.0, 1.0))
    assert np.all(mosaic.data[:, :4] == 10.0)
    assert np.all(mosaic.data[:, 4:] == 20.0)


def test_mosaic_requires_tiles():
    with pytest.raises(ValueError):
        mosaic_tiles([])


def test_correction_keeps_elevation_extent(geoid_tiles, elevation):
    corrected = apply_vertical_correction(elevation, list(geoid_tiles.values()))
    assert grids_match(corrected.grid, elevation.grid)
    assert np.allclose(corrected.grid.bounds, (0.25, 0.25, 1.75, 0.75))
    assert not np.allclose(corrected.grid.bounds, (0.0, 0.0, 2.0, 1.0))
    assert np.allclose(corrected.data[:, 0], 110.0)
    assert np.allclose(corrected.data[:, -1], 120.0)
    assert np.all(np.isfinite(corrected.data))


def test_correction_uses_every_intersecting_tile(geoid_tiles, make_grid):
    grid = make_grid(west=0.25, north=0.75, res=0.1, width=25, height=5)
    wide = RasterLayer(grid=grid, data=np.zeros(grid.shape, dtype="float32"), name="wide")
    corrected = apply_vertical_correction(wide, list(geoid_tiles.values()))
    assert np.all(np.isfinite(corrected.data))
    assert np.allclose(corrected.data[:, 0], 10.0)
    assert np.allclose(corrected.data[:, -1], 30.0)


def test_correction_without_coverage_raises(geoid_tiles, make_grid):
    grid = make_grid(west=40.0, north=40.0, res=0.1, width=5, height=5)
    elsewhere = RasterLayer(grid=grid, data=np.zeros(grid.shape, dtype="float32"))
    with pytest.raises(ValueError):
        apply_vertical_correction(elsewhere, list(geoid_tiles.values()))
