import json

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import box

from site_mask_utils.geo.raster import read_raster
from site_mask_utils.pipelines.config import (
    SiteMaskConfig,
    init_site_mask_config,
    load_site_mask_config,
)
from site_mask_utils.pipelines.site_mask import run_site_mask


@pytest.fixture
def site_inputs(make_grid, write_tif, tmp_path):
    """10x10 grid over (0, 1, 0, 1) at 0.1 degrees with one input per criterion."""
    grid = make_grid(west=0.0, north=1.0, res=0.1, width=10, height=10)

    q1 = np.full(grid.shape, 0.8)
    q1[:, 0] = 0.4  # boundary score, excluded
    q2 = np.full(grid.shape, 0.6)
    presence = np.zeros(grid.shape)
    presence[5, 5] = 1
    substrate = np.full(grid.shape, 2)
    substrate[0, :] = 1  # hard bottom

    land = gpd.GeoDataFrame(geometry=[box(0.9, 0.0, 1.0, 1.0)], crs="EPSG:4326")
    land_path = tmp_path / "land.geojson"
    land.to_file(land_path, driver="GeoJSON")

    return {
        "suitability_paths": {
            "q1": str(write_tif("q1.tif", q1, grid)),
            "q2": str(write_tif("q2.tif", q2, grid)),
        },
        "land_path": str(land_path),
        "presence_path": str(write_tif("presence.tif", presence, grid, dtype="uint8")),
        "substrate_path": str(write_tif("substrate.tif", substrate, grid, dtype="uint8")),
        "crs": "EPSG:4326",
        "bbox": (0.0, 1.0, 0.0, 1.0),
        "res": 0.1,
    }


def test_run_site_mask(site_inputs, tmp_path):
    cfg = init_site_mask_config(out_dir=tmp_path / "out", write_png=True, **site_inputs)
    summary = run_site_mask(cfg)

    # rows 1-9 (row 0 is hard bottom) x cols 1-8 (col 0 at threshold, col 9 land), minus presence
    assert summary["passing_cells"] == 9 * 8 - 1
    assert summary["width"] == 10 and summary["height"] == 10
    assert summary["valid_fraction"] == pytest.approx(71 / 100)

    result = read_raster(summary["raster_path"])
    assert np.isnan(result.data[5, 5])
    assert np.all(np.isnan(result.data[0, :]))
    assert np.all(np.isnan(result.data[:, 0]))
    assert np.all(np.isnan(result.data[:, 9]))
    assert np.allclose(result.data[1:, 1:9][np.isfinite(result.data[1:, 1:9])], 0.7)

    assert summary["png_path"].endswith("eligible_sites.png")


def test_run_site_mask_without_criteria(tmp_path):
    cfg = SiteMaskConfig(out_dir=tmp_path)
    with pytest.raises(ValueError):
        run_site_mask(cfg)


def test_load_site_mask_config(site_inputs, tmp_path):
    raw = dict(site_inputs, out_dir=str(tmp_path / "out"), bbox=list(site_inputs["bbox"]))
    path = tmp_path / "site.json"
    path.write_text(json.dumps(raw))

    cfg = load_site_mask_config(path)
    assert cfg.bbox == (0.0, 1.0, 0.0, 1.0)
    assert cfg.suitability_threshold == 0.4
    assert cfg.suitable_substrates == (2, 3)
    assert run_site_mask(cfg)["passing_cells"] == 71


def test_load_site_mask_config_rejects_bad_input(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"out_dir": "x", "threshold": 0.5}))
    with pytest.raises(ValueError, match="Unknown config keys"):
        load_site_mask_config(path)

    path.write_text(json.dumps([1, 2]))
    with pytest.raises(TypeError):
        load_site_mask_config(path)

    path.write_text(json.dumps({"res": 0.1}))
    with pytest.raises(ValueError, match="out_dir"):
        load_site_mask_config(path)
