# grib2csv - Test Fixtures
# SPDX-License-Identifier: Apache-2.0

"""
Synthetic GRIB2 messages for the decoder tests.

Messages are built octet by octet with struct so every test controls the
exact layout: grid template 3.0, product template 4.0, data representation
template 5.200 and a run-length bitstream in section 7.
"""

from datetime import datetime
import struct

import pytest


REFERENCE_TIME = datetime(2020, 7, 7, 7, 30, 0)


def sign_magnitude(value: int, size: int = 4) -> int:
    """Encode a signed integer the way GRIB2 does"""
    if value >= 0:
        return value
    return (1 << (size * 8 - 1)) | -value


def pack_samples(samples, bits: int) -> bytes:
    """Pack fixed-width samples MSB first, zero-padding the last octet"""
    value = 0
    nbits = 0
    for s in samples:
        value = (value << bits) | s
        nbits += bits
    pad = (-nbits) % 8
    value <<= pad
    nbits += pad
    return value.to_bytes(nbits // 8, byteorder="big")


def encode_runs(levels, bits: int, max_level_used: int) -> list:
    """
    Run-length encode level indices the way JMA packs them.

    Each run is its level followed by the extra repeat count as base
    (2^bits - MAXV - 1) digits, least significant first.
    """
    level_count = max_level_used + 1
    base = (1 << bits) - level_count
    samples = []
    i = 0
    while i < len(levels):
        level = levels[i]
        j = i
        while j < len(levels) and levels[j] == level:
            j += 1
        samples.append(level)
        extra = j - i - 1
        while extra > 0:
            samples.append(level_count + extra % base)
            extra //= base
        i = j
    return samples


def section(number: int, payload: bytes) -> bytes:
    return struct.pack(">IB", 5 + len(payload), number) + payload


def section1(reference_time: datetime = REFERENCE_TIME, status: int = 0) -> bytes:
    payload = struct.pack(
        ">HHBBBHBBBBBBB",
        34, 0,      # Tokyo, no subcentre
        2, 1,       # master / local table versions
        0,          # analysis
        reference_time.year, reference_time.month, reference_time.day,
        reference_time.hour, reference_time.minute, reference_time.second,
        status,
        0,
    )
    return section(1, payload)


def section3(
    ni: int,
    nj: int,
    lat_first: int,
    lon_first: int,
    di: int,
    dj: int,
    lat_last: int = None,
    lon_last: int = None,
    scanning_mode: int = 0x00,
    template: int = 0,
    number_of_points: int = None,
) -> bytes:
    if lat_last is None:
        lat_last = lat_first - (nj - 1) * dj
    if lon_last is None:
        lon_last = lon_first + (ni - 1) * di
    if number_of_points is None:
        number_of_points = ni * nj
    payload = struct.pack(
        ">BIBBHBBIBIBIIIIIIIBIIIIB",
        0, number_of_points, 0, 0, template,
        4,                      # GRS80
        0, 0, 1, 6378137, 1, 6356752,
        ni, nj,
        0, 0xFFFFFFFF,          # basic angle 0, subdivisions missing
        sign_magnitude(lat_first), sign_magnitude(lon_first),
        0x30,
        sign_magnitude(lat_last), sign_magnitude(lon_last),
        di, dj,
        scanning_mode,
    )
    return section(3, payload)


def section4(template: int = 0, category: int = 1, number: int = 8) -> bytes:
    return section(4, struct.pack(">HHBB", 0, template, category, number) + bytes(20))


def section5(
    number_of_points: int,
    bits: int,
    max_level_used: int,
    raw_levels,
    factor: int = 1,
    template: int = 200,
) -> bytes:
    payload = struct.pack(
        ">IHBHHB", number_of_points, template, bits, max_level_used, len(raw_levels), factor
    )
    payload += b"".join(struct.pack(">H", r) for r in raw_levels)
    return section(5, payload)


def section6(indicator: int = 255) -> bytes:
    return section(6, bytes([indicator]))


def section7(samples, bits: int) -> bytes:
    return section(7, pack_samples(samples, bits))


def wrap_message(body: bytes, discipline: int = 0, edition: int = 2) -> bytes:
    total = 16 + len(body) + 4
    return b"GRIB" + b"\x00\x00" + bytes([discipline, edition]) + total.to_bytes(8, "big") + body + b"7777"


def build_message(
    ni: int = 2,
    nj: int = 2,
    lat_first: int = 36_000_000,
    lon_first: int = 135_000_000,
    di: int = 10_000,
    dj: int = 10_000,
    bits: int = 1,
    max_level_used: int = 1,
    raw_levels=(15,),
    factor: int = 1,
    samples=(1, 1, 0, 1),
    scanning_mode: int = 0x00,
) -> bytes:
    """A complete single-field message (defaults: the 2x2 example grid)"""
    body = (
        section1()
        + section3(ni, nj, lat_first, lon_first, di, dj, scanning_mode=scanning_mode)
        + section4()
        + section5(ni * nj, bits, max_level_used, list(raw_levels), factor=factor)
        + section6()
        + section7(samples, bits)
    )
    return wrap_message(body)


@pytest.fixture
def example_message() -> bytes:
    """2x2 grid, levels [missing, 1.5], 1 bit per sample, indices [1, 1, 0, 1]"""
    return build_message()


@pytest.fixture
def example_file(tmp_path, example_message):
    path = tmp_path / "example.bin"
    path.write_bytes(example_message)
    return path


@pytest.fixture
def run_length_message() -> bytes:
    """
    7x3 grid, 4-bit samples, MAXV 10.

    The stream 3, 9, 12, 6, 4, 15, 2, 1, 0, 13, 12, 2, 3 expands to
    3, 9, 9, 6, 4, 4, 4, 4, 4, 2, 1, 0 (x8), 2, 3.
    """
    return build_message(
        ni=7,
        nj=3,
        bits=4,
        max_level_used=10,
        raw_levels=[0, 4, 10, 20, 30, 40, 50, 60, 70, 80],
        samples=[3, 9, 12, 6, 4, 15, 2, 1, 0, 13, 12, 2, 3],
    )
