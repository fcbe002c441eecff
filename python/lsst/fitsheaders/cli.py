# This file is part of lsst-fitsheaders.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (https://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.


"""Command-line interface for inspecting FITS headers."""

from __future__ import annotations

__all__ = ("main",)

import logging

import click
import pydantic

from ._bintable import BinTable
from ._common import FITS_BLOCK_SIZE
from ._reader import FitsHeaderReader
from ._serialization import ColumnModel, HeaderModel
from ._values import CharacterString

_BINTABLE = CharacterString("BINTABLE")
_HeaderList = pydantic.TypeAdapter(list[HeaderModel])


def _reader_options[F](func: F) -> F:
    func = click.option(
        "--page-size",
        type=click.IntRange(min=1),
        default=FITS_BLOCK_SIZE * 50,
        show_default=True,
        help="Number of bytes to read at once.",
    )(func)
    func = click.option(
        "--partial/--full",
        default=False,
        help="Read only the pages that hold headers instead of the whole file.",
    )(func)
    return click.argument("path")(func)


@click.group("fitsheaders")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for the lsst.fitsheaders logger.",
)
def main(log_level: str) -> None:
    """Decode the headers of FITS files."""
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("lsst.fitsheaders").setLevel(log_level.upper())


@main.command("print")
@_reader_options
def print_headers(path: str, partial: bool, page_size: int) -> None:
    """Print the records of every header in a file."""
    with FitsHeaderReader.open(path, page_size=page_size, partial=partial) as reader:
        for n, header in enumerate(reader):
            click.echo(f"# HDU {n}: header at {header.start}, data at {header.end_offset}")
            click.echo(str(header))


@main.command("json")
@_reader_options
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indentation.")
def json_headers(path: str, partial: bool, page_size: int, indent: int) -> None:
    """Dump every header in a file as JSON."""
    with FitsHeaderReader.open(path, page_size=page_size, partial=partial) as reader:
        models = [HeaderModel.from_header(header, with_columns=True) for header in reader]
    click.echo(_HeaderList.dump_json(models, indent=indent).decode())


@main.command("columns")
@_reader_options
def columns(path: str, partial: bool, page_size: int) -> None:
    """List the fields of every binary table extension in a file."""
    with FitsHeaderReader.open(path, page_size=page_size, partial=partial) as reader:
        for n, header in enumerate(reader):
            if header.get("XTENSION") != _BINTABLE:
                continue
            table = BinTable.from_header(header)
            click.echo(f"# HDU {n}: {table.n_rows} rows of {table.row_width} bytes")
            for column in ColumnModel.from_bintable(table):
                line = f"{column.name:<16} {column.form:<10} {column.width:>6}"
                if column.unit:
                    line = f"{line}  [{column.unit}]"
                click.echo(line)


if __name__ == "__main__":
    main()
