# grib2csv - CSV Export
# SPDX-License-Identifier: Apache-2.0

"""
Export decoded grid points to CSV.

Rows are ``longitude,latitude,value``, one per non-missing point, in scan
order. Coordinates are written as decimal degrees with 6 decimals (the
micro-degree grid unit, exactly) or, on request, as the raw micro-degree
integers used by the bounding box options.

Points are written in chunks so a full 2560 x 3360 grid never has to sit in
one DataFrame. The file appears at its final path only after every row was
written; on any failure nothing is left behind.
"""

from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
import logging
import os
import tempfile

import numpy as np
import pandas as pd

from grib2csv.assembler import GridPoint
from grib2csv.config import COORDINATE_FORMATS, CSV_HEADER, MICRO_DEGREES
from grib2csv.core import BoundingBox, Grib2Field
from grib2csv.errors import IoFailure

logger = logging.getLogger(__name__)


@dataclass
class ExportStats:
    """Statistics from a CSV export"""
    path: Path
    rows_written: int
    output_bytes: int
    points_considered: Optional[int] = None    # Non-missing points before bounding box filtering


class CsvExporter:
    """
    Writes grid points as CSV.
    """

    CHUNK_SIZE = 500_000

    def __init__(
        self,
        header: bool = True,
        coordinate_format: str = "degrees",
        chunk_size: int = CHUNK_SIZE,
    ):
        """
        Initialize exporter.

        Args:
            header: Write the ``longitude,latitude,value`` header row
            coordinate_format: "degrees" (135.000000) or "micro" (135000000)
            chunk_size: Points per DataFrame written
        """
        if coordinate_format not in COORDINATE_FORMATS:
            raise ValueError(f"Unknown coordinate format: {coordinate_format}")
        self.header = header
        self.coordinate_format = coordinate_format
        self.chunk_size = chunk_size

    def to_csv(
        self,
        grib_field: Grib2Field,
        output_path: Union[str, Path],
        bounds: Optional[BoundingBox] = None,
    ) -> ExportStats:
        """
        Export one decoded field.

        Args:
            grib_field: Field to export
            output_path: Destination CSV file
            bounds: Optional bounding box restricting the rows

        Returns:
            Export statistics
        """
        counter = _Counter(grib_field.points())
        points = bounds.filter(counter) if bounds is not None else counter
        stats = self.write_points(points, output_path)
        stats.points_considered = counter.count
        return stats

    def write_points(self, points: Iterable[GridPoint], output_path: Union[str, Path]) -> ExportStats:
        """
        Write points to ``output_path`` atomically.

        The points arrive already filtered, so ``points_considered`` is left
        unset; ``to_csv`` fills it in.

        Raises:
            IoFailure: the output cannot be created or written
        """
        output_path = Path(output_path)
        directory = output_path.parent

        try:
            handle = tempfile.NamedTemporaryFile(
                mode="w",
                dir=directory,
                prefix=f".{output_path.name}.",
                suffix=".tmp",
                newline="",
                encoding="utf-8",
                delete=False,
            )
        except OSError as e:
            raise IoFailure(f"Cannot create output in {directory}: {e.strerror or e}") from e

        tmp_path = Path(handle.name)
        rows = 0
        try:
            with handle:
                rows = self._write_chunks(points, handle)
            # NamedTemporaryFile creates 0600
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, output_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise IoFailure(f"Cannot write {output_path}: {e.strerror or e}") from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        output_bytes = output_path.stat().st_size
        logger.info(f"Wrote {rows:,} rows ({output_bytes / 1024:.1f} KB) to {output_path}")

        return ExportStats(
            path=output_path,
            rows_written=rows,
            output_bytes=output_bytes,
        )

    def _write_chunks(self, points: Iterable[GridPoint], handle) -> int:
        iterator = iter(points)
        rows = 0
        first = True

        while True:
            chunk = list(islice(iterator, self.chunk_size))
            if not chunk and not first:
                break

            frame = self._frame(chunk)
            frame.to_csv(handle, header=self.header and first, index=False, lineterminator="\n")
            rows += len(chunk)
            first = False

            if len(chunk) < self.chunk_size:
                break

        return rows

    def _frame(self, chunk: list[GridPoint]) -> pd.DataFrame:
        """Build one DataFrame with formatted coordinate columns"""
        if not chunk:
            return pd.DataFrame(columns=list(CSV_HEADER))

        lons = np.fromiter((p.lon for p in chunk), dtype=np.int64, count=len(chunk))
        lats = np.fromiter((p.lat for p in chunk), dtype=np.int64, count=len(chunk))
        values = np.fromiter((p.value for p in chunk), dtype=np.float64, count=len(chunk))

        if self.coordinate_format == "degrees":
            lon_col = np.char.mod("%.6f", lons / MICRO_DEGREES)
            lat_col = np.char.mod("%.6f", lats / MICRO_DEGREES)
        else:
            lon_col, lat_col = lons, lats

        return pd.DataFrame(
            {CSV_HEADER[0]: lon_col, CSV_HEADER[1]: lat_col, CSV_HEADER[2]: values},
            columns=list(CSV_HEADER),
        )


class _Counter:
    """Pass-through iterator that counts the items it yields"""

    def __init__(self, items: Iterable[GridPoint]):
        self._items = iter(items)
        self.count = 0

    def __iter__(self) -> Iterator[GridPoint]:
        return self

    def __next__(self) -> GridPoint:
        item = next(self._items)
        self.count += 1
        return item
