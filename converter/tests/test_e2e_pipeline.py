# grib2csv - End-to-End Pipeline Test
# SPDX-License-Identifier: Apache-2.0

"""
End-to-End Pipeline Test: GRIB2 file -> decoded field -> CSV

Builds a JMA-shaped message (north-west origin, 0.0125 x 0.008333 degree
spacing, long runs of missing sea points) and checks that:

1. The run-length stream expands back to the level grid it was built from
2. Every non-missing point appears once, in scan order, with its value
3. A bounding box keeps exactly the points inside it
"""

import numpy as np
import pandas as pd
import pytest

from grib2csv.cli import convert
from grib2csv.config import ConversionConfig
from grib2csv.core import BoundingBox, Grib2Decoder

from conftest import (
    encode_runs,
    section1,
    section3,
    section4,
    section5,
    section6,
    section7,
    wrap_message,
)


NI, NJ = 40, 30
LAT_FIRST, LON_FIRST = 47_995_833, 118_006_250
DI, DJ = 12_500, 8_333
RAW_LEVELS = [0, 4, 10, 20, 30, 50, 80, 100, 200, 300, 500, 800]
MAXV = 11


def build_levels() -> np.ndarray:
    levels = np.zeros((NJ, NI), dtype=np.int64)
    levels[3:12, 5:25] = 3
    levels[8:20, 18:40] = 7
    levels[21, :] = 11
    levels[25:30, 0:10] = 1
    levels[14, 30] = 0
    return levels


@pytest.fixture(params=[4, 8], ids=["4bit", "8bit"])
def jma_file(request, tmp_path):
    bits = request.param
    levels = build_levels()
    samples = encode_runs(levels.ravel().tolist(), bits, MAXV)
    body = (
        section1()
        + section3(NI, NJ, LAT_FIRST, LON_FIRST, DI, DJ)
        + section4()
        + section5(NI * NJ, bits, MAXV, RAW_LEVELS, factor=1)
        + section6()
        + section7(samples, bits)
    )
    path = tmp_path / f"jma_{bits}bit.bin"
    path.write_bytes(wrap_message(body))
    return path


def expected_points(levels: np.ndarray) -> pd.DataFrame:
    table = np.array([np.nan] + [r / 10 for r in RAW_LEVELS])
    rows, cols = np.nonzero(levels)
    return pd.DataFrame({
        "longitude": (LON_FIRST + cols * DI) / 1e6,
        "latitude": (LAT_FIRST - rows * DJ) / 1e6,
        "value": table[levels[rows, cols]],
    })


class TestPipeline:
    """Full decode and export"""

    def test_levels_round_trip(self, jma_file):
        field = Grib2Decoder().decode_file(jma_file).fields[0]

        np.testing.assert_array_equal(field.levels.reshape(NJ, NI), build_levels())

    def test_csv_matches_grid(self, jma_file, tmp_path):
        out = tmp_path / "out.csv"
        stats = convert(ConversionConfig(input_path=jma_file, output_path=out))

        frame = pd.read_csv(out)
        expected = expected_points(build_levels())

        assert list(frame.columns) == ["longitude", "latitude", "value"]
        assert stats.rows_written == len(expected)
        np.testing.assert_allclose(frame["longitude"], expected["longitude"], atol=1e-6)
        np.testing.assert_allclose(frame["latitude"], expected["latitude"], atol=1e-6)
        np.testing.assert_allclose(frame["value"], expected["value"])

    def test_bounding_box(self, jma_file, tmp_path):
        bounds = BoundingBox(
            northernmost=LAT_FIRST - 5 * DJ,
            southernmost=LAT_FIRST - 10 * DJ,
            westernmost=LON_FIRST + 10 * DI,
            easternmost=LON_FIRST + 19 * DI,
        )
        out = tmp_path / "out.csv"
        stats = convert(ConversionConfig(
            input_path=jma_file, output_path=out, bounds=bounds, coordinate_format="micro",
        ))

        frame = pd.read_csv(out)
        levels = build_levels()[5:11, 10:20]

        assert stats.rows_written == np.count_nonzero(levels)
        assert frame["latitude"].between(bounds.southernmost, bounds.northernmost).all()
        assert frame["longitude"].between(bounds.westernmost, bounds.easternmost).all()

    def test_validate(self, jma_file):
        assert Grib2Decoder().decode_file(jma_file).validate() == []
