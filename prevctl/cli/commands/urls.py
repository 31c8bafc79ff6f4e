# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Show the URLs of an existing preview environment."""

import asyncio
import dataclasses
from pathlib import Path
from typing import Optional, Tuple

import click

from prevctl.cli import cli
from prevctl.cli.helpers import handle_errors
from prevctl.cli.helpers.table import (
    Column,
    TableOptions,
    print_rows,
    table_options,
    validate_options,
)
from prevctl.discovery import DiscoveryRequest, discover_urls
from prevctl.utils.logging import configure_logging

TUNNEL_COLUMNS = (
    Column("service", "Service", style="cyan"),
    Column("port", "Port", justify="right"),
    Column("url", "URL", style="green"),
)


@cli.command(options_metavar="[OPTIONS]")
@click.argument("service", required=False)
@click.argument("port", required=False, type=click.IntRange(1, 65535))
@click.option("--id", "env_id", help="Environment id (default: <project>-<git branch>)")
@click.option("--project", "-p", "project_name", help="Project name (default: from compose file)")
@click.option(
    "--file",
    "-f",
    "compose_files",
    multiple=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Compose file used to infer the project name",
)
@click.option("--json", "as_json", is_flag=True, help="Print the URLs as JSON (same as --output json)")
@click.option("--debug", is_flag=True, help="Show debug output")
@table_options
@handle_errors
def urls(
    service: Optional[str],
    port: Optional[int],
    env_id: Optional[str],
    project_name: Optional[str],
    compose_files: Tuple[Path, ...],
    as_json: bool,
    debug: bool,
    table: TableOptions,
):
    """Show URLs for an existing environment.

    SERVICE limits the output to one service. PORT, given after SERVICE,
    limits it further to one container port.

    \b
    Examples:
      prevctl urls
      prevctl urls web
      prevctl urls web 8080 --json
      prevctl urls --columns url --no-header
      prevctl urls --sort -port --output csv
    """
    if debug:
        configure_logging(debug=True, force=True)
    if as_json:
        table = dataclasses.replace(table, output="json")
    validate_options(TUNNEL_COLUMNS, table)

    request = DiscoveryRequest(
        service=service,
        port=port,
        env_id=env_id,
        project_name=project_name,
        compose_files=tuple(compose_files),
    )
    result = asyncio.run(discover_urls(request))

    print_rows(
        [tunnel.to_dict() for tunnel in result.tunnels],
        TUNNEL_COLUMNS,
        table,
        banner=f"Preview environment {result.env_id} provisioned: {result.machine.public_ip_address}",
    )
