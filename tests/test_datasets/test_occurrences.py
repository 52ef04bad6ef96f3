import io
import json
from urllib.parse import parse_qs, urlparse

import pandas as pd
import pytest

from site_mask_utils.datasets import occurrences
from site_mask_utils.datasets.occurrences import (
    clean_categories,
    fetch_paged_json,
    join_unique,
    occurrences_to_gdf,
    read_api_token,
    split_to_csv,
)


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


@pytest.fixture
def paged_api(monkeypatch):
    pages = {
        "1": {"assessments": [{"taxon_id": 1}, {"taxon_id": 2}]},
        "2": {"assessments": [{"taxon_id": 3}]},
        "3": {"assessments": []},
    }
    seen = []

    def fake_urlopen(req):
        seen.append(req)
        page = parse_qs(urlparse(req.full_url).query)["page"][0]
        return FakeResponse(json.dumps(pages[page]).encode("utf-8"))

    monkeypatch.setattr(occurrences, "urlopen", fake_urlopen)
    monkeypatch.setenv("IUCN_REDLIST_TOKEN", "secret")
    return seen


def test_fetch_walks_pages_until_empty(paged_api):
    records = fetch_paged_json("https://api.example.org/v4/taxa?scope=marine")
    assert [r["taxon_id"] for r in records] == [1, 2, 3]
    assert len(paged_api) == 3
    assert paged_api[0].get_header("Authorization") == "Bearer secret"
    assert "scope=marine" in paged_api[0].full_url


def test_fetch_max_pages(paged_api):
    records = fetch_paged_json("https://api.example.org/v4/taxa", records_key="assessments", max_pages=1)
    assert len(records) == 2
    assert len(paged_api) == 1


def test_missing_token_raises(monkeypatch):
    monkeypatch.delenv("IUCN_REDLIST_TOKEN", raising=False)
    with pytest.raises(ValueError, match="IUCN_REDLIST_TOKEN"):
        read_api_token()


def test_clean_categories_drops_missing_and_deficient():
    df = pd.DataFrame({"species": list("abcde"), "category": ["LC", None, "DD", "EN", "NE"]})
    cleaned = clean_categories(df, "category")
    assert cleaned["species"].tolist() == ["a", "d"]


def test_join_unique_removes_duplicate_keys():
    left = pd.DataFrame({"taxon_id": [1, 1, 2, 3], "site": ["x", "y", "x", "z"]})
    right = pd.DataFrame({"taxon_id": [1, 1, 2], "category": ["LC", "VU", "EN"]})
    joined = join_unique(left, right, "taxon_id")
    assert len(joined) == len(left)
    assert joined["category"].tolist()[:3] == ["LC", "LC", "EN"]
    assert pd.isna(joined["category"].iloc[3])


def test_split_to_csv(tmp_path):
    df = pd.DataFrame({"kingdom": ["PLANTAE", "ANIMALIA", "PLANTAE"], "n": [1, 2, 3]})
    paths = split_to_csv(df, "kingdom", tmp_path / "tables", prefix="species")
    assert [p.name for p in paths] == ["species_ANIMALIA.csv", "species_PLANTAE.csv"]
    assert pd.read_csv(paths[1])["n"].tolist() == [1, 3]


def test_occurrences_to_gdf_drops_missing_coords():
    df = pd.DataFrame({"longitude": [-119.7, None], "latitude": [34.4, 34.0]})
    gdf = occurrences_to_gdf(df)
    assert len(gdf) == 1
    assert gdf.crs.to_epsg() == 4326
    assert gdf.geometry.iloc[0].x == pytest.approx(-119.7)
