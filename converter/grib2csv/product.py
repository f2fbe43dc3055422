# grib2csv - Identification, Product & Bitmap Sections
# SPDX-License-Identifier: Apache-2.0

"""
Sections 1, 4 and 6: what the message is, not how the grid is stored.

None of these carry grid data, but they are checked so that a file from a
different product family fails loudly instead of decoding into garbage.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from grib2csv.config import NO_BITMAP
from grib2csv.errors import MalformedSection, UnsupportedDataTemplate
from grib2csv.octets import read_uint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identification:
    """Section 1: originating centre, table versions and reference time"""

    centre: int
    subcentre: int
    master_table_version: int
    local_table_version: int
    reference_significance: int
    reference_time: datetime
    production_status: int   # 0 = operational, 1 = test
    data_type: int           # 0 = analysis, 1 = forecast

    @property
    def is_operational(self) -> bool:
        return self.production_status == 0


@dataclass(frozen=True)
class ProductDefinition:
    """Section 4: product template and parameter"""

    template: int
    parameter_category: int
    parameter_number: int


def parse_identification(payload: bytes) -> Identification:
    """
    Parse section 1.

    Octets 13-19 hold the reference time (year on two octets, then month,
    day, hour, minute, second), always UTC.
    """
    year = read_uint(payload, 7, 2, section=1)
    month, day, hour, minute, second = (read_uint(payload, i, 1, section=1) for i in range(9, 14))
    try:
        reference_time = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as e:
        raise MalformedSection(f"invalid reference time: {e}", section=1) from e

    ident = Identification(
        centre=read_uint(payload, 0, 2, section=1),
        subcentre=read_uint(payload, 2, 2, section=1),
        master_table_version=read_uint(payload, 4, 1, section=1),
        local_table_version=read_uint(payload, 5, 1, section=1),
        reference_significance=read_uint(payload, 6, 1, section=1),
        reference_time=reference_time,
        production_status=read_uint(payload, 14, 1, section=1),
        data_type=read_uint(payload, 15, 1, section=1),
    )
    if not ident.is_operational:
        logger.warning(f"Production status is {ident.production_status} (not an operational product)")
    return ident


def parse_product_definition(payload: bytes) -> ProductDefinition:
    """Parse the fixed head of section 4; the template body is not needed."""
    return ProductDefinition(
        template=read_uint(payload, 2, 2, section=4),
        parameter_category=read_uint(payload, 4, 1, section=4),
        parameter_number=read_uint(payload, 5, 1, section=4),
    )


def check_bitmap(payload: bytes) -> None:
    """
    Section 6: only "no bitmap" is supported.

    Missing points are carried by level 0 in the run-length stream, so the
    JMA products never ship a bitmap.
    """
    indicator = read_uint(payload, 0, 1, section=6)
    if indicator != NO_BITMAP:
        raise UnsupportedDataTemplate(
            f"section 6: bitmap indicator {indicator} is not supported (expected {NO_BITMAP}, no bitmap)"
        )
