# grib2csv - Grid Geometry
# SPDX-License-Identifier: Apache-2.0

"""
Section 3, grid definition template 3.0 (regular latitude/longitude).

All coordinates and increments are kept as integers in micro-degrees
(degrees x 10^6), the unit GRIB2 uses when the basic angle is 0. JMA
precipitation grids are typically 2560 x 3360 points at 0.0125 x 0.008333
degrees, starting at the north-west corner.
"""

from dataclasses import dataclass
import logging

from grib2csv.config import (
    LATLON_GRID_SOURCE,
    LATLON_GRID_TEMPLATE,
    SCAN_BOUSTROPHEDON,
    SCAN_I_NEGATIVE,
    SCAN_J_CONSECUTIVE,
    SCAN_J_POSITIVE,
)
from grib2csv.errors import MalformedSection, UnsupportedGridType
from grib2csv.octets import is_missing, read_signed, read_uint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridGeometry:
    """Regular lat/lon grid in micro-degrees"""

    number_of_points: int
    ni: int                  # Points along a parallel (columns)
    nj: int                  # Points along a meridian (rows)
    lat_first: int
    lon_first: int
    lat_last: int
    lon_last: int
    di: int                  # i direction increment
    dj: int                  # j direction increment
    scanning_mode: int = 0
    earth_shape: int = 0

    def __post_init__(self):
        if self.ni * self.nj != self.number_of_points:
            raise MalformedSection(
                f"ni * nj = {self.ni} * {self.nj} != number of points {self.number_of_points}",
                section=3,
            )

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, columns)"""
        return (self.nj, self.ni)

    @property
    def lat_step(self) -> int:
        """Signed latitude change from one row to the next"""
        return self.dj if self.scanning_mode & SCAN_J_POSITIVE else -self.dj

    @property
    def lon_step(self) -> int:
        """Signed longitude change from one column to the next"""
        return -self.di if self.scanning_mode & SCAN_I_NEGATIVE else self.di

    def to_dict(self) -> dict:
        """Serialize to dictionary"""
        return {
            "ni": self.ni,
            "nj": self.nj,
            "lat_first": self.lat_first,
            "lon_first": self.lon_first,
            "lat_last": self.lat_last,
            "lon_last": self.lon_last,
            "di": self.di,
            "dj": self.dj,
            "scanning_mode": self.scanning_mode,
        }


def parse_grid_geometry(payload: bytes) -> GridGeometry:
    """
    Parse section 3.

    Payload offsets are GRIB octet numbers minus 6.

    Raises:
        UnsupportedGridType: not template 3.0, non-default angle units, or a
            scanning mode the row-major assembler cannot follow
        MalformedSection: payload too short or inconsistent point counts
    """
    source = read_uint(payload, 0, 1, section=3)
    if source != LATLON_GRID_SOURCE:
        raise UnsupportedGridType(
            f"section 3: source of grid definition {source} is not supported (expected {LATLON_GRID_SOURCE})"
        )

    template = read_uint(payload, 7, 2, section=3)
    if template != LATLON_GRID_TEMPLATE:
        raise UnsupportedGridType(
            f"section 3: grid template 3.{template} is not supported (expected 3.{LATLON_GRID_TEMPLATE}, lat/lon)"
        )

    # Basic angle 0 (or missing) means increments in 10^-6 degree units
    basic_angle = read_uint(payload, 33, 4, section=3)
    subdivisions = read_uint(payload, 37, 4, section=3)
    if not (basic_angle == 0 or is_missing(basic_angle, 4)) or not (
        subdivisions == 0 or is_missing(subdivisions, 4)
    ):
        raise UnsupportedGridType(
            f"section 3: basic angle {basic_angle}/{subdivisions} is not supported (expected micro-degree units)"
        )

    scanning_mode = read_uint(payload, 66, 1, section=3)
    if scanning_mode & (SCAN_J_CONSECUTIVE | SCAN_BOUSTROPHEDON):
        raise UnsupportedGridType(
            f"section 3: scanning mode 0x{scanning_mode:02x} is not row-major"
        )

    grid = GridGeometry(
        number_of_points=read_uint(payload, 1, 4, section=3),
        ni=read_uint(payload, 25, 4, section=3),
        nj=read_uint(payload, 29, 4, section=3),
        lat_first=read_signed(payload, 41, 4, section=3),
        lon_first=read_signed(payload, 45, 4, section=3),
        lat_last=read_signed(payload, 50, 4, section=3),
        lon_last=read_signed(payload, 54, 4, section=3),
        di=read_uint(payload, 58, 4, section=3),
        dj=read_uint(payload, 62, 4, section=3),
        scanning_mode=scanning_mode,
        earth_shape=read_uint(payload, 9, 1, section=3),
    )

    logger.debug(
        f"Grid {grid.ni}x{grid.nj}: ({grid.lat_first}, {grid.lon_first}) -> "
        f"({grid.lat_last}, {grid.lon_last}), di={grid.di} dj={grid.dj}"
    )
    return grid
