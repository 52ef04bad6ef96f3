"""End-to-end masking pipelines."""

from .config import SiteMaskConfig, init_site_mask_config, load_site_mask_config
from .site_mask import run_site_mask

__all__ = [
    "SiteMaskConfig",
    "init_site_mask_config",
    "load_site_mask_config",
    "run_site_mask",
]
