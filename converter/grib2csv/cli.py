#!/usr/bin/env python3
# grib2csv - Command Line Interface
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface for the GRIB2 -> CSV converter.

Usage:
    grib2csv INPUT OUTPUT
    grib2csv -n 36000000 -s 35000000 -w 135000000 -e 136000000 INPUT OUTPUT
    grib2csv-info INPUT

Bounding box options are integers in micro-degrees (degrees x 10^6).
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from grib2csv import __version__
from grib2csv.config import ConversionConfig
from grib2csv.core import BoundingBox, Grib2Decoder
from grib2csv.errors import Grib2CsvError, InvalidBounds
from grib2csv.export import CsvExporter

console = Console(stderr=True)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _configure_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(error: Exception):
    console.print(f"[red]Error:[/] {escape(str(error))}", soft_wrap=True)
    sys.exit(1)


def convert(config: ConversionConfig):
    """
    Run one conversion.

    Decoding finishes before the output file is touched, so a format error
    never leaves a partial CSV behind.
    """
    message = Grib2Decoder().decode_file(config.input_path)

    if config.field_index >= len(message.fields):
        raise Grib2CsvError(
            f"Field {config.field_index} requested but the message has {len(message.fields)}"
        )
    grib_field = message.fields[config.field_index]

    exporter = CsvExporter(header=config.header, coordinate_format=config.coordinate_format)
    return exporter.to_csv(grib_field, config.output_path, bounds=config.bounds)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "-v", "--version", prog_name="grib2csv")
@click.argument("input_path", metavar="INPUT", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("output_path", metavar="OUTPUT", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-n", "--northernmost", type=int, default=None,
              help="Latitude of the northernmost point to output (ex. 36532213)")
@click.option("-s", "--southernmost", type=int, default=None,
              help="Latitude of the southernmost point to output (ex. 35432213)")
@click.option("-w", "--westernmost", type=int, default=None,
              help="Longitude of the westernmost point to output (ex. 135532213)")
@click.option("-e", "--easternmost", type=int, default=None,
              help="Longitude of the easternmost point to output (ex. 136532213)")
@click.option("--no-header", is_flag=True, help="Do not write the CSV header row")
@click.option("--field", "field_index", type=click.IntRange(min=0), default=0,
              help="Index of the field to export when the message repeats sections (default: 0)")
@click.option("--micro-degrees", is_flag=True,
              help="Write coordinates as micro-degree integers instead of decimal degrees")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(input_path: Path, output_path: Path, northernmost: Optional[int],
         southernmost: Optional[int], westernmost: Optional[int], easternmost: Optional[int],
         no_header: bool, field_index: int, micro_degrees: bool, debug: bool):
    """
    Convert a JMA precipitation GRIB2 file to CSV.

    Writes one longitude,latitude,value row per non-missing grid point of
    INPUT to OUTPUT, optionally limited to a bounding box.
    """
    _configure_logging(debug)

    # Bounds are checked before the input is touched
    try:
        bounds = BoundingBox(
            northernmost=northernmost,
            southernmost=southernmost,
            westernmost=westernmost,
            easternmost=easternmost,
        )
    except InvalidBounds as e:
        _fail(e)

    config = ConversionConfig(
        input_path=input_path,
        output_path=output_path,
        bounds=None if bounds.is_unbounded else bounds,
        header=not no_header,
        field_index=field_index,
        coordinate_format="micro" if micro_degrees else "degrees",
    )

    try:
        stats = convert(config)
    except Grib2CsvError as e:
        _fail(e)

    console.print(
        f"[green]Wrote[/] {stats.rows_written:,} of {stats.points_considered:,} points "
        f"to {escape(str(stats.path))} ({stats.output_bytes / 1024:.1f} KB)",
        soft_wrap=True,
    )


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "-v", "--version", prog_name="grib2csv-info")
@click.argument("input_path", metavar="INPUT", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--debug", is_flag=True, help="Enable debug logging")
def info(input_path: Path, debug: bool):
    """
    Display information about a GRIB2 file.
    """
    _configure_logging(debug)

    try:
        message = Grib2Decoder().decode_file(input_path)
    except Grib2CsvError as e:
        _fail(e)

    ident = message.identification

    table = Table(title=f"GRIB2: {escape(input_path.name)}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Message Length", f"{message.indicator.total_length:,} bytes")
    table.add_row("Centre", f"{ident.centre} / {ident.subcentre}")
    table.add_row("Tables", f"master {ident.master_table_version}, local {ident.local_table_version}")
    table.add_row("Reference Time", ident.reference_time.strftime("%Y-%m-%d %H:%M:%S UTC"))
    table.add_row("Status", "operational" if ident.is_operational else f"status {ident.production_status}")
    table.add_row("Fields", str(len(message.fields)))

    for index, f in enumerate(message.fields):
        grid = f.grid
        prefix = f"#{index} " if len(message.fields) > 1 else ""
        table.add_row(f"{prefix}Product", f"template 4.{f.product.template}, "
                      f"parameter {f.product.parameter_category}/{f.product.parameter_number}")
        table.add_row(f"{prefix}Grid Shape", f"{grid.ni} x {grid.nj} points")
        table.add_row(f"{prefix}First Point", f"{grid.lat_first / 1e6:.6f}°N, {grid.lon_first / 1e6:.6f}°E")
        table.add_row(f"{prefix}Last Point", f"{grid.lat_last / 1e6:.6f}°N, {grid.lon_last / 1e6:.6f}°E")
        table.add_row(f"{prefix}Increments", f"{grid.di / 1e6:.6f}° x {grid.dj / 1e6:.6f}°")
        table.add_row(f"{prefix}Levels", f"{f.table.max_level_used} used of {len(f.table.levels) - 1}, "
                      f"{f.table.bits_per_sample} bits/sample")
        missing = f.missing_count
        ratio = missing / grid.number_of_points if grid.number_of_points else 0.0
        table.add_row(f"{prefix}Missing", f"{missing:,} ({ratio:.1%})")

    console.print(table)

    issues = message.validate()
    if issues:
        console.print("\n[yellow]Validation Issues:[/]")
        for issue in issues:
            console.print(f"  • {escape(issue)}")
    else:
        console.print("\n[green]Message validation passed[/]")


if __name__ == "__main__":
    main()
