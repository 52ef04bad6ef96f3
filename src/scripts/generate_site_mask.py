import json
import logging
import time
from pathlib import Path

from site_mask_utils.core.utils import get_memory_mb
from site_mask_utils.geo.datum import apply_vertical_correction
from site_mask_utils.geo.raster import read_raster, write_raster
from site_mask_utils.pipelines.config import load_site_mask_config
from site_mask_utils.pipelines.site_mask import run_site_mask


def generate_mask(config_path):
    cfg = load_site_mask_config(config_path)
    start = time.time()
    summary = run_site_mask(cfg)
    end = time.time()
    logging.info(f"Site mask time for {cfg.out_name}: {end - start:.2f} seconds")
    print(json.dumps(summary, indent=2))
    return summary


def correct_datum(elevation_path, tile_dir, out_path, pattern="*.tif"):
    """
    Add every geoid tile in tile_dir that overlaps the elevation raster.
    """
    tiles = sorted(Path(tile_dir).glob(pattern))
    logging.info(f"Found {len(tiles)} correction tiles in {tile_dir}")
    elevation = read_raster(elevation_path)
    corrected = apply_vertical_correction(elevation, tiles)
    write_raster(corrected, out_path)
    logging.info(f"Final memory: {get_memory_mb():.0f}MB")
    return out_path


if __name__ == "__main__":
    """
    Sample usage:
    python src/scripts/generate_site_mask.py generate_mask \
        --config /path/to/site_mask.json --log

    python src/scripts/generate_site_mask.py correct_datum \
        --elevation /path/to/bathymetry.tif \
        --tile_dir /path/to/geoid_tiles \
        --out /path/to/bathymetry_navd88.tif
    """
    import argparse
    parser = argparse.ArgumentParser(description="Site eligibility masking utilities.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    mask_parser = subparsers.add_parser("generate_mask", help="Build the composite eligibility raster.")
    mask_parser.add_argument('--config', required=True, help='Path to site mask JSON config')
    mask_parser.add_argument('--log', action='store_true', help='Enable logging output')

    datum_parser = subparsers.add_parser("correct_datum", help="Apply geoid-height tiles to an elevation raster.")
    datum_parser.add_argument('--elevation', required=True, help='Path to elevation GeoTIFF')
    datum_parser.add_argument('--tile_dir', required=True, help='Directory of correction tiles')
    datum_parser.add_argument('--pattern', default='*.tif', help='Glob for tile files in tile_dir')
    datum_parser.add_argument('--out', required=True, help='Output GeoTIFF path')
    datum_parser.add_argument('--log', action='store_true', help='Enable logging output')

    args = parser.parse_args()

    if getattr(args, 'log', False):
        logging.basicConfig(level=logging.INFO)

    if args.command == "generate_mask":
        generate_mask(args.config)
    elif args.command == "correct_datum":
        correct_datum(
            elevation_path=args.elevation,
            tile_dir=args.tile_dir,
            out_path=args.out,
            pattern=args.pattern,
        )
