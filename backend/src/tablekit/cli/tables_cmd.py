"""Table configuration CLI commands: validate and list."""

from pathlib import Path

import click

from tablekit.config.loader import TableConfigLoader


def _load(path: Path) -> TableConfigLoader:
    loader = TableConfigLoader(path)
    loader.load_all()
    return loader


@click.group()
def tables():
    """Table configuration commands."""
    pass


@tables.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
def validate(path: Path):
    """Validate every table YAML file under PATH."""
    try:
        loader = _load(path)
    except (ValueError, KeyError) as e:
        click.echo(click.style(f"Validation failed: {e}", fg="red"), err=True)
        raise SystemExit(1)

    configs = loader.list_configs()
    click.echo(f"Loaded {len(configs)} table(s):")
    for config in sorted(configs, key=lambda c: c.entity_key):
        click.echo(
            f"  ✓ {config.entity_key} ({len(config.columns)} columns, "
            f"{len(config.views)} views)"
        )
    click.echo(click.style("\nAll table configurations are valid.", fg="green", bold=True))


@tables.command("list")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
def list_cmd(path: Path):
    """List tables defined under PATH."""
    try:
        loader = _load(path)
    except (ValueError, KeyError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    for config in sorted(loader.list_configs(), key=lambda c: c.entity_key):
        owner = config.owner_field or "-"
        click.echo(
            f"{config.entity_key}\t{config.display_name_plural}\t"
            f"collection={config.collection_name}\towner={owner}"
        )
