"""Configuration constants for raster alignment and masking."""
from enum import Enum

# Memory management
MAX_WINDOW_SIZE_GB = 1.0  # Maximum window size in GB before chunking
CHUNK_HEIGHT = 10000  # Number of rows to read per chunk

# Mask values. Failing cells carry NaN so that products propagate exclusion.
MASK_PASS = 1.0
MASK_FAIL = float("nan")
OUT_DTYPE = "float32"

# Nodata used by rasterio.merge when mosaicking correction tiles
MOSAIC_NODATA = -32768.0

# CRS
class CRS(Enum):
    WGS84 = "EPSG:4326"
    WEB_MERCATOR = "EPSG:3857"
    NAD83 = "EPSG:4269"
    CA_ALBERS = "EPSG:3310"
    UTM_10N = "EPSG:32610"
    UTM_11N = "EPSG:32611"

    def __int__(self):
        return int(self.value[self.value.find(":") + 1:])
