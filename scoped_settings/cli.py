"""CLI utilities."""

import json

import click
from pydantic import ValidationError
from sqlalchemy.orm import Session

from scoped_settings.config import config
from scoped_settings.core import codec
from scoped_settings.core.exceptions import SettingsError
from scoped_settings.core.registry import SettingsRegistry
from scoped_settings.core.repository import SettingRepository
from scoped_settings.database import SessionLocal, init_db
from scoped_settings.logging_config import configure_logging
from scoped_settings.models.storage_type import StorageType
from scoped_settings.seed import seed_settings

TYPE_CHOICES = [storage_type.value for storage_type in StorageType]


def _parse_untyped(raw: str):
    """Read a bare command-line value: JSON literals when they parse, text otherwise."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _display(value) -> str:
    return json.dumps(value, default=str)


@click.group()
@click.option("--registry", "registry_file", default=None, help="Alias registry YAML file")
@click.pass_context
def cli(ctx, registry_file):
    """Scoped settings CLI."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["registry_file"] = registry_file or config.settings_registry_file


def _registry(ctx) -> SettingsRegistry:
    return SettingsRegistry.from_yaml(ctx.obj["registry_file"])


@cli.command(name="init-db")
def init_db_command():
    """Create the settings tables."""
    init_db()
    click.echo("Settings tables created")


@cli.command()
@click.pass_context
def aliases(ctx):
    """List registered aliases."""
    for definition in _registry(ctx).aliases():
        paths = ", ".join(definition.declared_paths) or "-"
        click.echo(f"{definition.alias}: {definition.vendor}.{definition.plugin} [{paths}]")


@cli.command()
@click.argument("alias")
@click.argument("path")
@click.option("--channel", default=None)
@click.option("--locale", default=None)
@click.pass_context
def get(ctx, alias: str, path: str, channel: str, locale: str):
    """Print the effective value of a setting."""
    db: Session = SessionLocal()
    try:
        settings = _registry(ctx).settings(alias, SettingRepository(db), require_value=True)
        value = settings.get(path, channel=channel, locale=locale)
        click.echo(_display(value))
    except SettingsError as e:
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command(name="set")
@click.argument("alias")
@click.argument("path")
@click.argument("value")
@click.option("--type", "storage_type", default=None, type=click.Choice(TYPE_CHOICES))
@click.option("--channel", default=None)
@click.option("--locale", default=None)
@click.pass_context
def set_command(ctx, alias: str, path: str, value: str, storage_type: str, channel: str, locale: str):
    """Store a setting value for one scope."""
    db: Session = SessionLocal()
    try:
        settings = _registry(ctx).settings(alias, SettingRepository(db))
        target_type = storage_type or settings.get_storage_type(path) or settings.get_declared_type(path)
        typed_value = codec.coerce(target_type, value) if target_type else _parse_untyped(value)
        record = settings.set(path, typed_value, channel=channel, locale=locale, storage_type=storage_type)
        db.commit()
        click.echo(f"{settings.alias}.{path} = {_display(record.get_value())} ({record.storage_type})")
    except SettingsError as e:
        db.rollback()
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
@click.argument("alias")
@click.argument("path")
@click.option("--channel", default=None)
@click.option("--locale", default=None)
@click.pass_context
def unset(ctx, alias: str, path: str, channel: str, locale: str):
    """Remove a channel and/or locale override."""
    db: Session = SessionLocal()
    try:
        settings = _registry(ctx).settings(alias, SettingRepository(db))
        if settings.delete(path, channel=channel, locale=locale):
            db.commit()
            click.echo("Override removed")
        else:
            click.echo("No such override")
    except (SettingsError, ValueError) as e:
        db.rollback()
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
@click.argument("yaml_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def seed(ctx, yaml_file: str):
    """Load settings from a YAML seed file."""
    try:
        count = seed_settings(yaml_file, registry_file=ctx.obj["registry_file"])
    except (SettingsError, ValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Seeded {count} settings")


if __name__ == "__main__":
    cli()
