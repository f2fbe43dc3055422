# grib2csv - Section Reader
# SPDX-License-Identifier: Apache-2.0

"""
Section framing for GRIB2 messages.

A message is laid out as:
1. Section 0 (indicator): fixed 16 octets, "GRIB" + discipline + edition + total length
2. Sections 1-7: 4-octet big-endian length, 1-octet section number, payload
3. Section 8: the literal "7777"

The reader works on the whole message in memory and yields one Section per
framed chunk until it meets the end marker.
"""

from dataclasses import dataclass
from typing import Iterator, Optional
import logging

from grib2csv.config import (
    END_MARKER,
    GRIB_EDITION,
    GRIB_MAGIC,
    INDICATOR_LENGTH,
    METEOROLOGICAL_DISCIPLINE,
    SECTION_HEADER_LENGTH,
)
from grib2csv.errors import MalformedSection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Indicator:
    """Section 0 contents"""

    discipline: int
    edition: int
    total_length: int


@dataclass(frozen=True)
class Section:
    """
    One framed section.

    ``payload`` starts right after the section number, so payload index k
    is GRIB octet k + 6 of the section.
    """

    id: int
    length: int
    payload: bytes
    offset: int = 0  # Position of the length field within the message

    def __post_init__(self):
        if self.length != SECTION_HEADER_LENGTH + len(self.payload):
            raise MalformedSection(
                f"declared length {self.length} != {SECTION_HEADER_LENGTH} + payload {len(self.payload)}",
                section=self.id,
            )


def read_indicator(data: bytes) -> Indicator:
    """
    Parse and check section 0.

    Raises:
        MalformedSection: bad magic, wrong discipline/edition, or the message
            is shorter than its declared total length
    """
    if len(data) < INDICATOR_LENGTH:
        raise MalformedSection(
            f"input is {len(data)} bytes, too short for the indicator", section=0
        )
    if data[:4] != GRIB_MAGIC:
        raise MalformedSection(f"expected {GRIB_MAGIC!r}, found {data[:4]!r}", section=0)

    discipline = data[6]
    edition = data[7]
    total_length = int.from_bytes(data[8:16], byteorder="big")

    if discipline != METEOROLOGICAL_DISCIPLINE:
        raise MalformedSection(
            f"discipline is {discipline}, expected {METEOROLOGICAL_DISCIPLINE}", section=0
        )
    if edition != GRIB_EDITION:
        raise MalformedSection(f"edition is {edition}, expected {GRIB_EDITION}", section=0)
    if total_length > len(data):
        raise MalformedSection(
            f"message declares {total_length} bytes but only {len(data)} are available (truncated)",
            section=0,
        )

    return Indicator(discipline=discipline, edition=edition, total_length=total_length)


class SectionReader:
    """
    Iterable over the framed sections of a message.

    Each call to ``iter()`` starts again from ``offset``, so the same reader
    can be walked more than once.
    """

    def __init__(self, data: bytes, offset: int = INDICATOR_LENGTH, end: Optional[int] = None):
        """
        Args:
            data: Whole message (or file) contents
            offset: Position of the first section length field
            end: Stop position (default: end of data); bytes beyond are ignored
        """
        self.data = data
        self.offset = offset
        self.end = len(data) if end is None else min(end, len(data))

    def __iter__(self) -> Iterator[Section]:
        data = self.data
        position = self.offset

        while True:
            remaining = self.end - position
            if remaining < len(END_MARKER):
                raise MalformedSection(
                    f"end marker {END_MARKER.decode()} not found before end of input (truncated at byte {position})"
                )
            if data[position:position + 4] == END_MARKER:
                logger.debug(f"End marker at byte {position}")
                return
            if remaining < SECTION_HEADER_LENGTH:
                raise MalformedSection(
                    f"{remaining} trailing bytes at {position} are neither a section header nor the end marker"
                )

            length = int.from_bytes(data[position:position + 4], byteorder="big")
            number = data[position + 4]

            if length < SECTION_HEADER_LENGTH:
                raise MalformedSection(
                    f"declared length {length} at byte {position} is shorter than the section header",
                    section=number,
                )
            if length > remaining:
                raise MalformedSection(
                    f"declared length {length} exceeds the {remaining} remaining bytes (truncated)",
                    section=number,
                )

            payload = bytes(data[position + SECTION_HEADER_LENGTH:position + length])
            logger.debug(f"Section {number}: {length} bytes at {position}")
            yield Section(id=number, length=length, payload=payload, offset=position)

            position += length
