# grib2csv - Core Decoder
# SPDX-License-Identifier: Apache-2.0

"""
Core decoding engine for JMA precipitation GRIB2 messages.

This module handles:
1. Bounding box filtering of grid points (micro-degree units)
2. Walking the sections of a message in order and decoding each field
3. Cross-checking grid, level table and bitstream against each other
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
import logging

import numpy as np

from grib2csv.assembler import GridPoint, assemble_points, to_grid
from grib2csv.bitstream import LevelStreamDecoder
from grib2csv.config import INDICATOR_LENGTH, MICRO_DEGREES
from grib2csv.errors import (
    InvalidBounds,
    IoFailure,
    MalformedSection,
    SampleCountMismatch,
)
from grib2csv.grid import GridGeometry, parse_grid_geometry
from grib2csv.product import (
    Identification,
    ProductDefinition,
    check_bitmap,
    parse_identification,
    parse_product_definition,
)
from grib2csv.quantization import QuantizationTable, parse_quantization_table
from grib2csv.sections import Indicator, SectionReader, read_indicator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    """
    Optional geographic bounds for emitted points.

    All bounds are signed integers in micro-degrees (degrees x 10^6), the
    same unit as the grid. Absent bounds do not constrain that side, and
    every present bound is inclusive.
    """

    northernmost: Optional[int] = None
    southernmost: Optional[int] = None
    westernmost: Optional[int] = None
    easternmost: Optional[int] = None

    def __post_init__(self):
        """Validate that the box is not inverted"""
        if (
            self.northernmost is not None
            and self.southernmost is not None
            and self.northernmost < self.southernmost
        ):
            raise InvalidBounds(
                f"Invalid latitude range: northernmost {self.northernmost} < southernmost {self.southernmost}"
            )
        if (
            self.easternmost is not None
            and self.westernmost is not None
            and self.easternmost < self.westernmost
        ):
            raise InvalidBounds(
                f"Invalid longitude range: easternmost {self.easternmost} < westernmost {self.westernmost}"
            )

    @classmethod
    def from_degrees(
        cls,
        north: Optional[float] = None,
        south: Optional[float] = None,
        west: Optional[float] = None,
        east: Optional[float] = None,
    ) -> "BoundingBox":
        """
        Create bounding box from decimal degrees.

        Args:
            north, south: Latitude bounds in degrees
            west, east: Longitude bounds in degrees

        Returns:
            BoundingBox in micro-degrees
        """
        def micro(deg: Optional[float]) -> Optional[int]:
            return None if deg is None else int(round(deg * MICRO_DEGREES))

        return cls(
            northernmost=micro(north),
            southernmost=micro(south),
            westernmost=micro(west),
            easternmost=micro(east),
        )

    @property
    def is_unbounded(self) -> bool:
        return all(
            b is None
            for b in (self.northernmost, self.southernmost, self.westernmost, self.easternmost)
        )

    def contains(self, lon: int, lat: int) -> bool:
        if self.northernmost is not None and lat > self.northernmost:
            return False
        if self.southernmost is not None and lat < self.southernmost:
            return False
        if self.westernmost is not None and lon < self.westernmost:
            return False
        if self.easternmost is not None and lon > self.easternmost:
            return False
        return True

    def filter(self, points: Iterable[GridPoint]) -> Iterator[GridPoint]:
        """Lazily keep the points inside the box"""
        if self.is_unbounded:
            yield from points
            return
        for point in points:
            if self.contains(point.lon, point.lat):
                yield point

    def to_dict(self) -> dict:
        """Serialize to dictionary"""
        return {
            "northernmost": self.northernmost,
            "southernmost": self.southernmost,
            "westernmost": self.westernmost,
            "easternmost": self.easternmost,
        }


@dataclass
class Grib2Field:
    """One decoded product: a grid, its level table and a level per point"""

    product: ProductDefinition
    grid: GridGeometry
    table: QuantizationTable
    levels: np.ndarray

    @property
    def missing_count(self) -> int:
        """Points whose level maps to the missing sentinel"""
        return int(np.isnan(self.table.as_array()[self.levels]).sum())

    def points(self, bounds: Optional[BoundingBox] = None) -> Iterator[GridPoint]:
        """Non-missing points in scan order, optionally restricted to ``bounds``"""
        points = assemble_points(self.grid, self.table, self.levels)
        if bounds is None:
            return points
        return bounds.filter(points)

    def values(self) -> np.ndarray:
        """Physical values as a (nj, ni) array, NaN where missing"""
        return to_grid(self.grid, self.table, self.levels)


@dataclass
class Grib2Message:
    """
    A decoded GRIB2 message.

    JMA files carry one field, but GRIB2 allows sections 2-7, 3-7 or 4-7 to
    repeat, so ``fields`` keeps every one in order.
    """

    indicator: Indicator
    identification: Identification
    fields: list[Grib2Field] = field(default_factory=list)

    def validate(self) -> list[str]:
        """Check data integrity, return list of issues"""
        issues = []

        if not self.fields:
            issues.append("No fields present")

        for index, f in enumerate(self.fields):
            grid = f.grid
            if grid.number_of_points and f.missing_count == grid.number_of_points:
                issues.append(f"Field {index} is all missing")

            last_lat = grid.lat_first + (grid.nj - 1) * grid.lat_step
            last_lon = grid.lon_first + (grid.ni - 1) * grid.lon_step
            if last_lat != grid.lat_last:
                issues.append(
                    f"Field {index} last row latitude {last_lat} != declared {grid.lat_last}"
                )
            if last_lon != grid.lon_last:
                issues.append(
                    f"Field {index} last column longitude {last_lon} != declared {grid.lon_last}"
                )

        return issues


# Section that may follow each section (None = start of message)
SECTION_ORDER: dict[Optional[int], frozenset[int]] = {
    None: frozenset({1}),
    1: frozenset({2, 3}),
    2: frozenset({3}),
    3: frozenset({4}),
    4: frozenset({5}),
    5: frozenset({6}),
    6: frozenset({7}),
    7: frozenset({2, 3, 4}),
}


class Grib2Decoder:
    """
    Decodes JMA run-length precipitation GRIB2 messages.

    Supported layout:
    - Grid template 3.0 (regular lat/lon, micro-degree units)
    - Data representation template 5.200 (run-length levels)
    - No bitmap (section 6 indicator 255)

    The whole message is held in memory; fields are decoded eagerly so that
    any format error surfaces before output is written.
    """

    def decode_file(self, path: Union[str, Path]) -> Grib2Message:
        """
        Read and decode a GRIB2 file.

        Raises:
            IoFailure: the file cannot be read
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise IoFailure(f"Cannot read {path}: {e.strerror or e}") from e

        logger.info(f"Read {len(data):,} bytes from {path}")
        return self.decode(data)

    def decode(self, data: bytes) -> Grib2Message:
        """
        Decode a message held in memory.

        Args:
            data: Message bytes, starting at "GRIB"

        Returns:
            Grib2Message with one Grib2Field per section 7
        """
        indicator = read_indicator(data)
        reader = SectionReader(data, offset=INDICATOR_LENGTH, end=indicator.total_length)

        identification = None
        grid = None
        product = None
        table = None
        fields = []
        previous = None

        for section in reader:
            allowed = SECTION_ORDER.get(previous, frozenset())
            if section.id not in allowed:
                expected = ", ".join(str(s) for s in sorted(allowed))
                raise MalformedSection(
                    f"unexpected section {section.id} after section {previous} (expected {expected})",
                    section=section.id,
                )
            previous = section.id

            if section.id == 1:
                identification = parse_identification(section.payload)
            elif section.id == 2:
                logger.debug(f"Skipping local use section ({section.length} bytes)")
            elif section.id == 3:
                grid = parse_grid_geometry(section.payload)
            elif section.id == 4:
                product = parse_product_definition(section.payload)
            elif section.id == 5:
                table = parse_quantization_table(section.payload)
            elif section.id == 6:
                check_bitmap(section.payload)
            elif section.id == 7:
                fields.append(self._decode_field(section.payload, product, grid, table))

        if previous != 7:
            raise MalformedSection(
                f"message ends after section {previous}, expected a data section"
            )

        message = Grib2Message(
            indicator=indicator,
            identification=identification,
            fields=fields,
        )

        logger.info(
            f"Decoded {len(fields)} field(s), reference time "
            f"{identification.reference_time:%Y-%m-%d %H:%M UTC}"
        )
        return message

    def _decode_field(
        self,
        payload: bytes,
        product: ProductDefinition,
        grid: GridGeometry,
        table: QuantizationTable,
    ) -> Grib2Field:
        """Expand one section 7 against the grid and table in effect"""
        if grid.number_of_points != table.number_of_points:
            raise SampleCountMismatch(
                f"number of points differs (section 3: {grid.number_of_points}, "
                f"section 5: {table.number_of_points})"
            )

        decoder = LevelStreamDecoder(table.bits_per_sample, table.level_count)
        levels = decoder.decode(payload, grid.number_of_points)

        f = Grib2Field(product=product, grid=grid, table=table, levels=levels)
        logger.debug(
            f"Field: {grid.ni}x{grid.nj} grid, {f.missing_count} of {grid.number_of_points} missing"
        )
        return f
