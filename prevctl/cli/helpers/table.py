# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared table options for list commands.

Adds --columns, --sort, --filter, --output, --no-header and --no-truncate
to a command and renders rows (plain dicts) accordingly:

    @table_options
    def my_command(..., table: TableOptions):
        print_rows(rows, COLUMNS, table)
"""

import csv
import functools
import io
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import click
import yaml
from rich.table import Table

from prevctl.cli.helpers import console

OUTPUT_FORMATS = ("table", "csv", "json", "yaml")


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    justify: str = "left"
    style: Optional[str] = None


@dataclass(frozen=True)
class TableOptions:
    columns: Tuple[str, ...] = ()
    sort: Tuple[str, ...] = ()
    filter: Optional[str] = None
    output: str = "table"
    no_header: bool = False
    no_truncate: bool = False


def _split(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _find_column(name: str, columns: Sequence[Column], option: str) -> Column:
    wanted = name.lower()
    for column in columns:
        if wanted in (column.key.lower(), column.header.lower()):
            return column
    choices = ", ".join(column.key for column in columns)
    raise click.BadParameter(f"Unknown column {name!r} (choose from {choices})", param_hint=option)


def select_columns(columns: Sequence[Column], options: TableOptions) -> List[Column]:
    """Columns to show, in --columns order when given."""
    if not options.columns:
        return list(columns)
    return [_find_column(name, columns, "--columns") for name in options.columns]


def filter_rows(
    rows: List[Dict[str, Any]], columns: Sequence[Column], options: TableOptions
) -> List[Dict[str, Any]]:
    """Apply --filter "column=regex"; a leading '-' on the column negates it."""
    if not options.filter:
        return rows
    name, sep, pattern = options.filter.partition("=")
    if not sep:
        raise click.BadParameter("Expected COLUMN=REGEX", param_hint="--filter")
    negate = name.startswith("-")
    column = _find_column(name.lstrip("-"), columns, "--filter")
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise click.BadParameter(f"Invalid regex {pattern!r}: {e}", param_hint="--filter") from e
    return [row for row in rows if bool(regex.search(str(row[column.key]))) != negate]


def sort_rows(
    rows: List[Dict[str, Any]], columns: Sequence[Column], options: TableOptions
) -> List[Dict[str, Any]]:
    """Apply --sort "col1,-col2"; stable, so unsorted ties keep their order."""
    result = list(rows)
    # Least significant key first
    for name in reversed(options.sort):
        column = _find_column(name.lstrip("-"), columns, "--sort")
        result.sort(key=lambda row: row[column.key], reverse=name.startswith("-"))
    return result


def validate_options(columns: Sequence[Column], options: TableOptions) -> None:
    """Raise click.BadParameter for unknown columns or a bad filter."""
    select_columns(columns, options)
    filter_rows([], columns, options)
    sort_rows([], columns, options)


def _render_table(rows: List[Dict[str, Any]], columns: Sequence[Column], options: TableOptions) -> Table:
    table = Table(show_header=not options.no_header, header_style="bold")
    overflow = "fold" if options.no_truncate else "ellipsis"
    for column in columns:
        table.add_column(
            column.header,
            justify=column.justify,
            style=column.style,
            overflow=overflow,
            no_wrap=not options.no_truncate,
        )
    for row in rows:
        table.add_row(*(str(row[column.key]) for column in columns))
    return table


def _render_csv(rows: List[Dict[str, Any]], columns: Sequence[Column], options: TableOptions) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if not options.no_header:
        writer.writerow([column.header for column in columns])
    for row in rows:
        writer.writerow([row[column.key] for column in columns])
    return buffer.getvalue().rstrip("\n")


def print_rows(
    rows: List[Dict[str, Any]],
    columns: Sequence[Column],
    options: TableOptions,
    banner: Optional[str] = None,
) -> None:
    """Filter, sort and print rows in the requested output format.

    The banner is only printed above a table, so csv/json/yaml output can be
    piped as is.
    """
    rows = sort_rows(filter_rows(rows, columns, options), columns, options)
    shown = select_columns(columns, options)
    records = [{column.key: row[column.key] for column in shown} for row in rows]

    if options.output == "json":
        click.echo(json.dumps(records, indent=2))
    elif options.output == "yaml":
        click.echo(yaml.safe_dump(records, sort_keys=False).rstrip("\n"))
    elif options.output == "csv":
        click.echo(_render_csv(records, shown, options))
    else:
        if banner:
            console.print(banner, highlight=False)
        console.print(_render_table(records, shown, options))


def table_options(func: Callable) -> Callable:
    """Decorator adding the table options; passes them as `table`."""

    @click.option("--columns", help="Only show these columns (comma-separated)")
    @click.option("--sort", help="Sort by column, prefix '-' for descending (comma-separated)")
    @click.option("--filter", "row_filter", help="Keep rows where COLUMN matches REGEX (COLUMN=REGEX)")
    @click.option(
        "--output",
        type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
        default="table",
        show_default=True,
        help="Output format",
    )
    @click.option("--no-header", is_flag=True, help="Hide the table header")
    @click.option("--no-truncate", is_flag=True, help="Do not truncate output to fit the screen")
    @functools.wraps(func)
    def wrapper(*args, columns, sort, row_filter, output, no_header, no_truncate, **kwargs):
        kwargs["table"] = TableOptions(
            columns=_split(columns),
            sort=_split(sort),
            filter=row_filter,
            output=output.lower(),
            no_header=no_header,
            no_truncate=no_truncate,
        )
        return func(*args, **kwargs)

    return wrapper
