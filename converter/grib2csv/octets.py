# grib2csv - Octet Helpers
# SPDX-License-Identifier: Apache-2.0

"""
Big-endian integer reads at fixed payload offsets.

GRIB2 stores signed quantities (latitudes, longitudes, scale factors) in
sign-magnitude form: the most significant bit is the sign and the remaining
bits are the absolute value. This is not two's complement.
"""

from typing import Optional

from grib2csv.errors import MalformedSection


def read_uint(payload: bytes, offset: int, size: int, section: Optional[int] = None) -> int:
    """Read an unsigned big-endian integer of ``size`` octets."""
    end = offset + size
    if offset < 0 or end > len(payload):
        raise MalformedSection(
            f"payload too short: need octets {offset + 6}-{end + 5}, have {len(payload) + 5}",
            section=section,
        )
    return int.from_bytes(payload[offset:end], byteorder="big", signed=False)


def read_signed(payload: bytes, offset: int, size: int, section: Optional[int] = None) -> int:
    """Read a GRIB2 sign-magnitude integer of ``size`` octets."""
    raw = read_uint(payload, offset, size, section=section)
    sign_bit = 1 << (size * 8 - 1)
    if raw & sign_bit:
        return -(raw & (sign_bit - 1))
    return raw


def is_missing(value: int, size: int) -> bool:
    """All bits set marks a missing value in GRIB2 fixed-width fields."""
    return value == (1 << (size * 8)) - 1
