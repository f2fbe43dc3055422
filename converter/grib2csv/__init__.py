# grib2csv - JMA Precipitation GRIB2 Converter
# SPDX-License-Identifier: Apache-2.0

"""
Decoder for JMA run-length precipitation GRIB2 files.

Turns the 1km-mesh precipitation analyses (grid template 3.0, data
representation template 5.200) into longitude,latitude,value CSV rows.

Core operations:
1. Section framing: walk the length-prefixed sections up to "7777"
2. Level decoding: expand the run-length bitstream into one level per point
3. Grid assembly: pair levels with coordinates, drop missing points
4. Export: optional bounding box, atomic CSV write
"""

__version__ = "0.1.0"

from grib2csv.assembler import GridPoint, assemble_points
from grib2csv.bitstream import BitReader, LevelStreamDecoder, decode_levels
from grib2csv.core import BoundingBox, Grib2Decoder, Grib2Field, Grib2Message
from grib2csv.errors import (
    Grib2CsvError,
    InvalidBounds,
    IoFailure,
    MalformedSection,
    SampleCountMismatch,
    UnsupportedDataTemplate,
    UnsupportedGridType,
)
from grib2csv.export import CsvExporter, ExportStats
from grib2csv.grid import GridGeometry
from grib2csv.quantization import QuantizationTable
from grib2csv.sections import Section, SectionReader

__all__ = [
    "BitReader",
    "BoundingBox",
    "CsvExporter",
    "ExportStats",
    "GridGeometry",
    "GridPoint",
    "Grib2CsvError",
    "Grib2Decoder",
    "Grib2Field",
    "Grib2Message",
    "InvalidBounds",
    "IoFailure",
    "LevelStreamDecoder",
    "MalformedSection",
    "QuantizationTable",
    "SampleCountMismatch",
    "Section",
    "SectionReader",
    "UnsupportedDataTemplate",
    "UnsupportedGridType",
    "assemble_points",
    "decode_levels",
]
