"""Species occurrence / assessment tables fetched from paged JSON APIs."""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union
from urllib.parse import urlencode, urlparse, parse_qsl, urlunparse
from urllib.request import Request, urlopen

import geopandas as gpd
import pandas as pd

from site_mask_utils.configs.ds_constants import (
    DEFICIENT_CATEGORIES,
    OCCURRENCE_API_TOKEN_ENV,
    OCCURRENCE_PAGE_PARAM,
)
from site_mask_utils.core.utils import make_dirs_if_not_exists

def read_api_token(env_var: str = OCCURRENCE_API_TOKEN_ENV) -> str:
    token = os.environ.get(env_var)
    if not token:
        raise ValueError(f"API token not set; export {env_var}")
    return token

def _with_query(url: str, **params) -> str:
    parts = urlparse(url)
    query = dict(parse_qsl(parts.query))
    query.update({k: str(v) for k, v in params.items()})
    return urlunparse(parts._replace(query=urlencode(query)))

def _load_json(url: str, token: str) -> Union[dict, list]:
    req = Request(url, headers={"Authorization": f"Bearer {token}", "Accept": "application/json"})
    with urlopen(req) as r:
        return json.loads(r.read().decode("utf-8"))

def _page_records(payload: Union[dict, list], records_key: Optional[str]) -> list:
    if isinstance(payload, list):
        return payload
    if records_key is not None:
        return payload.get(records_key, [])
    # First list-valued field holds the records
    for v in payload.values():
        if isinstance(v, list):
            return v
    return []

def fetch_paged_json(
    url: str,
    token_env: str = OCCURRENCE_API_TOKEN_ENV,
    page_param: str = OCCURRENCE_PAGE_PARAM,
    records_key: Optional[str] = None,
    first_page: int = 1,
    max_pages: Optional[int] = None,
) -> List[dict]:
    """
    Walk `page_param` = first_page, first_page + 1, ... until a page has no records.
    Network and decode errors propagate.
    """
    token = read_api_token(token_env)
    records: List[dict] = []
    page = first_page
    n_pages = 0
    while max_pages is None or n_pages < max_pages:
        page_url = _with_query(url, **{page_param: page})
        batch = _page_records(_load_json(page_url, token), records_key)
        if not batch:
            break
        records.extend(batch)
        n_pages += 1
        logging.info(f"Fetched page {page}: {len(batch)} records ({len(records)} total)")
        page += 1
    return records

def clean_categories(
    df: pd.DataFrame,
    column: str,
    deficient: Iterable[str] = DEFICIENT_CATEGORIES,
) -> pd.DataFrame:
    """
    Drop rows whose category is missing or one of `deficient`.
    """
    deficient = set(deficient)
    keep = df[column].notna() & ~df[column].isin(deficient)
    logging.info(f"Dropping {int((~keep).sum())} of {len(df)} rows with missing/deficient '{column}'")
    return df[keep].reset_index(drop=True)

def join_unique(left: pd.DataFrame, right: pd.DataFrame, key: str) -> pd.DataFrame:
    """
    Left join after removing duplicate `key` rows from `right` (first one kept),
    so each left row matches at most one right row.
    """
    dupes = int(right.duplicated(subset=key).sum())
    if dupes:
        logging.info(f"Removing {dupes} duplicate '{key}' rows before join")
    right = right.drop_duplicates(subset=key, keep="first")
    return left.merge(right, on=key, how="left", validate="many_to_one")

def split_to_csv(
    df: pd.DataFrame,
    column: str,
    out_dir: Union[str, Path],
    prefix: str = "table",
) -> List[Path]:
    """
    Write one CSV per distinct value of `column`.
    """
    make_dirs_if_not_exists(out_dir)
    paths = []
    for value, group in df.groupby(column, sort=True):
        out_path = Path(out_dir) / f"{prefix}_{value}.csv"
        group.to_csv(out_path, index=False)
        paths.append(out_path)
    logging.info(f"Wrote {len(paths)} tables to {out_dir}/")
    return paths

def occurrences_to_gdf(
    df: pd.DataFrame,
    lon: str = "longitude",
    lat: str = "latitude",
    crs: int = 4326,
) -> gpd.GeoDataFrame:
    """
    Point GeoDataFrame from coordinate columns; rows missing a coordinate are dropped.
    """
    df = df.dropna(subset=[lon, lat])
    return gpd.GeoDataFrame(
        df,
        geometry=gpd.points_from_xy(df[lon], df[lat]),
        crs=f"EPSG:{crs}",
    )
