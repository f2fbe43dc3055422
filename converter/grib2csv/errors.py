# grib2csv - Error Taxonomy
# SPDX-License-Identifier: Apache-2.0

"""
Errors raised while decoding a GRIB2 message or exporting its grid.

Every error is terminal for a run: the input is a static file, so a failed
parse is never retried.
"""

from typing import Optional


class Grib2CsvError(Exception):
    """Base class for all converter errors"""


class MalformedSection(Grib2CsvError, ValueError):
    """Framing inconsistency, bad ordering or truncated input"""

    def __init__(self, message: str, section: Optional[int] = None):
        if section is not None:
            message = f"section {section}: {message}"
        super().__init__(message)
        self.section = section


class UnsupportedGridType(Grib2CsvError):
    """Grid definition is valid GRIB2 but not a regular lat/lon grid"""


class UnsupportedDataTemplate(Grib2CsvError):
    """Data representation is not the run-length level scheme"""


class SampleCountMismatch(Grib2CsvError):
    """Decoded level count disagrees with the declared number of points"""


class InvalidBounds(Grib2CsvError, ValueError):
    """Bounding box is self-contradictory"""


class IoFailure(Grib2CsvError, OSError):
    """Input could not be read or output could not be written"""
