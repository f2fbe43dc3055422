# grib2csv - Format Constants & Run Configuration
# SPDX-License-Identifier: Apache-2.0

"""
Format constants for the JMA precipitation GRIB2 products and the
per-run conversion configuration.

The constants are properties of the file format, not user settings:
- Section 0: "GRIB" magic, discipline 0 (meteorological), edition 2
- Section 3: grid template 3.0 (regular latitude/longitude)
- Section 5: data representation template 5.200 (run-length level values)
- Section 6: bitmap indicator 255 (no bitmap)
- Section 8: "7777" end marker
"""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from grib2csv.core import BoundingBox


# ============================================================================
# FORMAT CONSTANTS
# ============================================================================

GRIB_MAGIC = b"GRIB"
END_MARKER = b"7777"
INDICATOR_LENGTH = 16          # Section 0 is fixed size, no length prefix
SECTION_HEADER_LENGTH = 5      # 4-octet length + 1-octet section number

METEOROLOGICAL_DISCIPLINE = 0
GRIB_EDITION = 2

LATLON_GRID_SOURCE = 0         # Grid defined by template number
LATLON_GRID_TEMPLATE = 0       # Template 3.0
RUN_LENGTH_DATA_TEMPLATE = 200 # Template 5.200 (JMA local)
NO_BITMAP = 255

# Coordinates are carried as degrees x 10^6 throughout
MICRO_DEGREES = 1_000_000

# Scanning mode flag bits (GRIB2 code table 3.4)
SCAN_I_NEGATIVE = 0x80         # Points in i direction scan west to east unless set
SCAN_J_POSITIVE = 0x40         # Points in j direction scan north to south unless set
SCAN_J_CONSECUTIVE = 0x20      # Adjacent points in j direction are consecutive
SCAN_BOUSTROPHEDON = 0x10      # Alternate rows scan in opposite direction

CSV_HEADER = ("longitude", "latitude", "value")

COORDINATE_FORMATS = ("degrees", "micro")


@dataclass(frozen=True)
class ConversionConfig:
    """Settings for one input -> CSV conversion run"""

    input_path: Path
    output_path: Path
    bounds: Optional["BoundingBox"] = None
    header: bool = True
    field_index: int = 0
    coordinate_format: str = "degrees"  # "degrees" or "micro"

    def __post_init__(self):
        if self.coordinate_format not in COORDINATE_FORMATS:
            raise ValueError(
                f"Unknown coordinate format: {self.coordinate_format} "
                f"(expected one of {', '.join(COORDINATE_FORMATS)})"
            )
        if self.field_index < 0:
            raise ValueError(f"Field index must be >= 0, got {self.field_index}")
