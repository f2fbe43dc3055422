# grib2csv - Decoder Tests
# SPDX-License-Identifier: Apache-2.0

"""
Tests for message-level decoding: section order, cross-checks and
repeated fields.
"""

from datetime import datetime, timezone
import logging

import numpy as np
import pytest

from grib2csv.core import Grib2Decoder, Grib2Message
from grib2csv.errors import (
    IoFailure,
    MalformedSection,
    SampleCountMismatch,
    UnsupportedDataTemplate,
)

from conftest import (
    section,
    section1,
    section3,
    section4,
    section5,
    section6,
    section7,
    wrap_message,
)


GRID = section3(2, 2, 36_000_000, 135_000_000, 10_000, 10_000)


def data_sections(samples=(1, 1, 0, 1), raw_levels=(15,), number_of_points=4, indicator=255):
    return (
        section4()
        + section5(number_of_points, 1, 1, list(raw_levels))
        + section6(indicator)
        + section7(samples, 1)
    )


class TestDecode:
    """Tests for Grib2Decoder.decode"""

    def test_example(self, example_message):
        message = Grib2Decoder().decode(example_message)

        assert isinstance(message, Grib2Message)
        assert len(message.fields) == 1
        field = message.fields[0]
        assert field.levels.tolist() == [1, 1, 0, 1]
        assert field.missing_count == 1
        assert list(field.points()) == [
            (135_000_000, 36_000_000, 1.5),
            (135_010_000, 36_000_000, 1.5),
            (135_010_000, 35_990_000, 1.5),
        ]

    def test_identification(self, example_message):
        ident = Grib2Decoder().decode(example_message).identification

        assert ident.centre == 34
        assert ident.reference_time == datetime(2020, 7, 7, 7, 30, tzinfo=timezone.utc)
        assert ident.is_operational

    def test_run_length_message(self, run_length_message):
        field = Grib2Decoder().decode(run_length_message).fields[0]

        assert field.levels.tolist() == [3, 9, 9, 6, 4, 4, 4, 4, 4, 2, 1] + [0] * 8 + [2, 3]
        assert field.missing_count == 8
        assert field.values().shape == (3, 7)

    def test_values_grid(self, example_message):
        values = Grib2Decoder().decode(example_message).fields[0].values()

        assert values[0].tolist() == [1.5, 1.5]
        assert np.isnan(values[1, 0])

    def test_local_use_section_skipped(self):
        data = wrap_message(section1() + section(2, b"jma") + GRID + data_sections())
        assert len(Grib2Decoder().decode(data).fields) == 1

    def test_repeated_fields(self):
        data = wrap_message(
            section1() + GRID + data_sections() + data_sections(samples=(0, 0, 1, 1), raw_levels=(25,))
        )
        message = Grib2Decoder().decode(data)

        assert len(message.fields) == 2
        assert [p.value for p in message.fields[1].points()] == [2.5, 2.5]

    def test_non_operational_status_warns(self, caplog):
        data = wrap_message(section1(status=1) + GRID + data_sections())
        with caplog.at_level(logging.WARNING, logger="grib2csv"):
            Grib2Decoder().decode(data)

        assert "Production status" in caplog.text


class TestStructuralErrors:
    """Tests for messages the decoder must refuse"""

    def test_missing_section(self):
        body = section1() + GRID + section4() + section5(4, 1, 1, [15]) + section7((1, 1, 0, 1), 1)
        with pytest.raises(MalformedSection, match="unexpected section 7"):
            Grib2Decoder().decode(wrap_message(body))

    def test_no_data_section(self):
        with pytest.raises(MalformedSection, match="expected a data section"):
            Grib2Decoder().decode(wrap_message(section1() + GRID))

    def test_starts_without_identification(self):
        with pytest.raises(MalformedSection):
            Grib2Decoder().decode(wrap_message(GRID + data_sections()))

    def test_truncated(self, example_message):
        with pytest.raises(MalformedSection, match="truncated"):
            Grib2Decoder().decode(example_message[:-6])

    def test_point_counts_disagree(self):
        data = wrap_message(section1() + GRID + data_sections(number_of_points=5))
        with pytest.raises(SampleCountMismatch, match="section 3"):
            Grib2Decoder().decode(data)

    def test_bitmap_present(self):
        data = wrap_message(section1() + GRID + data_sections(indicator=0))
        with pytest.raises(UnsupportedDataTemplate, match="bitmap"):
            Grib2Decoder().decode(data)

    def test_short_stream(self):
        data = wrap_message(section1() + GRID + section4() + section5(4, 8, 1, [15])
                            + section6() + section7((1, 1, 0), 8))
        with pytest.raises(SampleCountMismatch):
            Grib2Decoder().decode(data)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(IoFailure):
            Grib2Decoder().decode_file(tmp_path / "missing.bin")


class TestValidate:
    """Tests for Grib2Message.validate"""

    def test_consistent_message(self, example_message):
        assert Grib2Decoder().decode(example_message).validate() == []

    def test_all_missing_reported(self):
        data = wrap_message(section1() + GRID + data_sections(samples=(0, 0, 0, 0)))
        issues = Grib2Decoder().decode(data).validate()

        assert any("all missing" in i for i in issues)

    def test_last_point_mismatch_reported(self):
        grid = section3(2, 2, 36_000_000, 135_000_000, 10_000, 10_000, lat_last=35_000_000)
        issues = Grib2Decoder().decode(wrap_message(section1() + grid + data_sections())).validate()

        assert any("latitude" in i for i in issues)
