# grib2csv - Quantization Table
# SPDX-License-Identifier: Apache-2.0

"""
Section 5, data representation template 5.200 (JMA run-length level values).

Grid values are not stored directly. Each grid point holds a small integer
"level"; section 5 carries the table that maps level m (1..M) to a
representative physical value, scaled by a decimal factor:

    physical = raw / 10 ** decimal_scale_factor

Level 0 is reserved for missing points and has no table entry.

Layout (GRIB octets):
    6-9    number of data points
    10-11  template number (200)
    12     bits per sample
    13-14  maximum level used in this message (MAXV)
    15-16  maximum level M (number of table entries)
    17     decimal scale factor
    18-    M two-octet representative values
"""

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np

from grib2csv.config import RUN_LENGTH_DATA_TEMPLATE
from grib2csv.errors import MalformedSection, UnsupportedDataTemplate
from grib2csv.octets import read_signed, read_uint

logger = logging.getLogger(__name__)

LEVEL_TABLE_OFFSET = 12
LEVEL_VALUE_OCTETS = 2


@dataclass(frozen=True)
class QuantizationTable:
    """Level index -> physical value mapping; ``levels[0]`` is missing (None)"""

    number_of_points: int
    bits_per_sample: int
    max_level_used: int
    decimal_scale_factor: int
    levels: tuple[Optional[float], ...]

    def __post_init__(self):
        if not self.levels or self.levels[0] is not None:
            raise MalformedSection("level 0 must be the missing sentinel", section=5)
        if self.max_level_used > len(self.levels) - 1:
            raise MalformedSection(
                f"maximum level used {self.max_level_used} exceeds the "
                f"{len(self.levels) - 1} entries of the level table",
                section=5,
            )

    @property
    def level_count(self) -> int:
        """Number of literal level indices; samples at or above this are run lengths"""
        return self.max_level_used + 1

    @property
    def run_length_base(self) -> int:
        """Radix of the run-length digits (2^bits - level_count)"""
        return (1 << self.bits_per_sample) - self.level_count

    def value_of(self, level: int) -> Optional[float]:
        """Physical value for a level index, None when missing"""
        return self.levels[level]

    def as_array(self) -> np.ndarray:
        """Level table as float64, NaN at missing entries"""
        return np.array(
            [np.nan if v is None else v for v in self.levels], dtype=np.float64
        )


def parse_quantization_table(payload: bytes) -> QuantizationTable:
    """
    Parse section 5.

    Raises:
        UnsupportedDataTemplate: template other than 5.200, or a bit width
            too small to hold every literal level
        MalformedSection: payload shorter than the declared level table
    """
    template = read_uint(payload, 4, 2, section=5)
    if template != RUN_LENGTH_DATA_TEMPLATE:
        raise UnsupportedDataTemplate(
            f"section 5: data representation template 5.{template} is not supported "
            f"(expected 5.{RUN_LENGTH_DATA_TEMPLATE}, run-length levels)"
        )

    number_of_points = read_uint(payload, 0, 4, section=5)
    bits_per_sample = read_uint(payload, 6, 1, section=5)
    max_level_used = read_uint(payload, 7, 2, section=5)
    max_level = read_uint(payload, 9, 2, section=5)
    factor = read_signed(payload, 11, 1, section=5)

    if not 1 <= bits_per_sample <= 32:
        raise UnsupportedDataTemplate(
            f"section 5: {bits_per_sample} bits per sample is outside 1-32"
        )
    if (1 << bits_per_sample) < max_level_used + 1:
        raise UnsupportedDataTemplate(
            f"section 5: {bits_per_sample} bits cannot represent level {max_level_used}"
        )

    table_end = LEVEL_TABLE_OFFSET + max_level * LEVEL_VALUE_OCTETS
    if table_end > len(payload):
        raise MalformedSection(
            f"level table declares {max_level} entries but only "
            f"{(len(payload) - LEVEL_TABLE_OFFSET) // LEVEL_VALUE_OCTETS} fit in the section",
            section=5,
        )

    raw = np.frombuffer(payload[LEVEL_TABLE_OFFSET:table_end], dtype=">u2")
    if factor >= 0:
        levels = (None,) + tuple(int(r) / 10 ** factor for r in raw)
    else:
        levels = (None,) + tuple(float(int(r) * 10 ** -factor) for r in raw)

    logger.debug(
        f"Level table: {max_level} levels, {max_level_used} used, "
        f"{bits_per_sample} bits/sample, scale 10^-{factor}"
    )

    return QuantizationTable(
        number_of_points=number_of_points,
        bits_per_sample=bits_per_sample,
        max_level_used=max_level_used,
        decimal_scale_factor=factor,
        levels=levels,
    )
