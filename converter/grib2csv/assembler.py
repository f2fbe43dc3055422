# grib2csv - Grid Assembler
# SPDX-License-Identifier: Apache-2.0

"""
Pair decoded level indices with grid coordinates.

Levels come in scan order: the first row starts at (lat_first, lon_first),
each column moves one ``di`` along the row, and each row moves one ``dj``
(southwards for the usual scanning mode 0x00). Missing points are dropped,
never written out as zero.
"""

from typing import Iterator, NamedTuple
import logging

import numpy as np

from grib2csv.errors import SampleCountMismatch
from grib2csv.grid import GridGeometry
from grib2csv.quantization import QuantizationTable

logger = logging.getLogger(__name__)


class GridPoint(NamedTuple):
    """One non-missing grid value; coordinates in micro-degrees"""

    lon: int
    lat: int
    value: float


def grid_coordinates(grid: GridGeometry) -> Iterator[tuple[int, int]]:
    """Yield (lon, lat) for every grid point in row-major scan order."""
    for j in range(grid.nj):
        lat = grid.lat_first + j * grid.lat_step
        for i in range(grid.ni):
            yield grid.lon_first + i * grid.lon_step, lat


def level_values(table: QuantizationTable, levels: np.ndarray) -> np.ndarray:
    """Physical value per point, NaN where missing."""
    return table.as_array()[levels]


def to_grid(grid: GridGeometry, table: QuantizationTable, levels: np.ndarray) -> np.ndarray:
    """Physical values as a (nj, ni) array in scan order, NaN where missing."""
    return level_values(table, levels).reshape(grid.shape)


def assemble_points(
    grid: GridGeometry,
    table: QuantizationTable,
    levels: np.ndarray,
) -> Iterator[GridPoint]:
    """
    Lazily produce the non-missing grid points.

    Args:
        grid: Grid geometry from section 3
        table: Level table from section 5
        levels: One level index per grid point, scan order

    Yields:
        GridPoint for every point whose level maps to a value
    """
    if len(levels) != grid.number_of_points:
        raise SampleCountMismatch(
            f"{len(levels)} levels for a grid of {grid.number_of_points} points"
        )

    values = level_values(table, levels)
    present = np.flatnonzero(~np.isnan(values))
    if len(present) == 0:
        return
    rows, cols = np.divmod(present, grid.ni)

    lats = grid.lat_first + rows * grid.lat_step
    lons = grid.lon_first + cols * grid.lon_step

    logger.debug(f"{len(present)} of {grid.number_of_points} points present")

    for lon, lat, value in zip(lons.tolist(), lats.tolist(), values[present].tolist()):
        yield GridPoint(lon, lat, value)
