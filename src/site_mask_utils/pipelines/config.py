import json
from dataclasses import dataclass, field, fields
from typing import Mapping, Optional, Tuple, Union
from pathlib import Path

from site_mask_utils.configs.ds_constants import (
    PRESENCE_EXCLUDE_ABOVE,
    SBC_TEMPLATE_BBOX,
    SBC_TEMPLATE_CRS,
    SBC_TEMPLATE_RES,
    SUITABILITY_THRESHOLD,
    SUITABLE_SUBSTRATES,
)

# Config keys whose JSON lists become tuples
TUPLE_KEYS = {"bbox", "suitable_substrates"}

@dataclass(frozen=True)
class SiteMaskConfig:
    out_dir: Union[str, Path]
    # season name -> suitability raster path, one criterion per season
    suitability_paths: Mapping[str, Union[str, Path]] = field(default_factory=dict)
    crs: Union[str, int] = SBC_TEMPLATE_CRS
    bbox: Tuple[float, float, float, float] = SBC_TEMPLATE_BBOX  # west, east, south, north
    res: float = SBC_TEMPLATE_RES
    suitability_threshold: float = SUITABILITY_THRESHOLD
    land_path: Optional[Union[str, Path]] = None
    protected_path: Optional[Union[str, Path]] = None
    presence_path: Optional[Union[str, Path]] = None
    presence_exclude_above: float = PRESENCE_EXCLUDE_ABOVE
    substrate_path: Optional[Union[str, Path]] = None
    suitable_substrates: Tuple[int, ...] = SUITABLE_SUBSTRATES
    out_name: str = "eligible_sites"
    write_png: bool = False

def init_site_mask_config(
    out_dir: Union[str, Path],
    suitability_paths: Optional[Mapping[str, Union[str, Path]]] = None,
    **overrides,
) -> SiteMaskConfig:
    """
    Helper function to initialize SiteMaskConfig
    """
    return SiteMaskConfig(
        out_dir=out_dir,
        suitability_paths=dict(suitability_paths or {}),
        **overrides,
    )

def load_site_mask_config(path: Union[str, Path]) -> SiteMaskConfig:
    """
    Read a SiteMaskConfig from a JSON object whose keys are SiteMaskConfig fields.
    """
    with open(path, "r") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise TypeError(f"Expected a JSON object in {path}, got {type(raw).__name__}")

    known = {f.name for f in fields(SiteMaskConfig)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {sorted(unknown)}")
    if "out_dir" not in raw:
        raise ValueError(f"{path} must set 'out_dir'")

    for k in TUPLE_KEYS & set(raw):
        raw[k] = tuple(raw[k])
    return init_site_mask_config(**raw)
