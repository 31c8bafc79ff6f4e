# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""prevctl CLI package."""

import click

from prevctl import __version__


@click.group()
@click.version_option(version=__version__, prog_name="prevctl")
def cli():
    """prevctl - Find the URLs of services in remote preview environments."""


def main():
    """Main entry point."""
    cli()


from prevctl.cli.commands import urls  # noqa: E402,F401
