# SITE SUITABILITY CONSTANTS -------------------------------------------------

from enum import Enum

# Cells scoring at or below this in any quarter are not eligible
SUITABILITY_THRESHOLD = 0.4

# Prior presence counts above this exclude a cell
PRESENCE_EXCLUDE_ABOVE = 0

# Substrate classes that can host an anchored line
class Substrate(Enum):
    HARD = 1
    MIXED = 2
    SOFT = 3

SUITABLE_SUBSTRATES = (Substrate.MIXED.value, Substrate.SOFT.value)

# Santa Barbara Channel template (west, east, south, north), degrees
SBC_TEMPLATE_BBOX = (-120.65, -118.80, 33.85, 34.59)
SBC_TEMPLATE_RES = 0.008
SBC_TEMPLATE_CRS = "EPSG:4326"

# OCCURRENCE API CONSTANTS ---------------------------------------------------

OCCURRENCE_API_TOKEN_ENV = "IUCN_REDLIST_TOKEN"
OCCURRENCE_PAGE_PARAM = "page"
# Red List categories that carry no usable status
DEFICIENT_CATEGORIES = ("DD", "NE")
