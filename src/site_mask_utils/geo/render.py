import logging
from pathlib import Path
from typing import Optional, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from site_mask_utils.core.transforms import finite_values
from site_mask_utils.core.utils import make_dirs_if_not_exists
from site_mask_utils.geo.grid import RasterLayer


def save_layer_png(
    layer: RasterLayer,
    out_path: Union[str, Path],
    title: Optional[str] = None,
    cmap: str = "viridis",
    dpi: int = 150,
) -> Path:
    """
    Render a layer as a static map in its own coordinates. Nodata cells are left blank.
    """
    out_path = Path(out_path)
    make_dirs_if_not_exists(out_path.parent)
    west, south, east, north = layer.grid.bounds
    data = np.ma.masked_invalid(layer.data)
    finite = finite_values(layer.data)
    vmin, vmax = (finite.min(), finite.max()) if finite.size else (None, None)

    fig, ax = plt.subplots(figsize=(8, 8 * layer.grid.height / max(layer.grid.width, 1) + 1))
    im = ax.imshow(
        data, cmap=cmap, vmin=vmin, vmax=vmax,
        extent=(west, east, south, north), interpolation="nearest",
    )
    if finite.size:
        fig.colorbar(im, ax=ax, shrink=0.7, label=layer.name or "")
    ax.set_title(title or layer.name or "")
    ax.set_xlabel(f"x ({layer.grid.crs})")
    ax.set_ylabel("y")
    fig.tight_layout()
    fig.savefig(out_path, dpi=dpi)
    plt.close(fig)
    logging.info(f"Saved {out_path}")
    return out_path
