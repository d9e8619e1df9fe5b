"""Tablekit CLI entry point."""

import click


@click.group()
def cli():
    """Tablekit: configurable table engine CLI."""
    pass


# Register subcommand groups
from tablekit.cli.serve_cmd import serve  # noqa: E402
from tablekit.cli.tables_cmd import tables  # noqa: E402

cli.add_command(tables)
cli.add_command(serve)
