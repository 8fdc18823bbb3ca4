"""Configuration commands over AppConfig.

Commands:
    - config show [--field FIELD]     # Display configuration
    - config set FIELD VALUE          # Update one field and save
    - config reset [--field FIELD]    # Reset to defaults and save
"""

from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError

from lightdeck.exceptions import ConfigurationError, format_error_for_display
from lightdeck.model_manager import ModelManagerService
from lightdeck.models import AppConfig


def _open(config_file: Path | None) -> ModelManagerService[AppConfig]:
    path = config_file or AppConfig.default_path()
    try:
        model = AppConfig.load_or_default(path)
    except ConfigurationError as e:
        message, hint = format_error_for_display(e)
        if hint:
            message += f"\n{hint}"
        raise click.ClickException(message) from e
    return ModelManagerService[AppConfig](AppConfig, model, default_path=path)


def _field_names() -> list[str]:
    return list(AppConfig.model_fields)


@click.group(name="config")
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file to use (default: ~/.lightdeck/config.json)",
)
@click.pass_context
def config(ctx, config_file: Path | None):
    """Configure lightdeck settings."""
    ctx.obj = config_file


@config.command(name="show")
@click.option("--field", "-f", type=click.Choice(_field_names()), default=None, help="Show one field only")
@click.pass_obj
def show(config_file: Path | None, field: str | None):
    """Display the current configuration."""
    service = _open(config_file)
    values = service.get_all()
    if field:
        click.echo(str(values[field]))
        return

    click.echo(f"Configuration ({service.default_path}):")
    for name, value in values.items():
        description = AppConfig.model_fields[name].description or ""
        click.echo(f"  {name}: {value}")
        if description:
            click.echo(f"      {description}")


@config.command(name="set")
@click.argument("field", type=click.Choice(_field_names()))
@click.argument("value")
@click.pass_obj
def set_value(config_file: Path | None, field: str, value: str):
    """Set FIELD to VALUE and save."""
    service = _open(config_file)
    try:
        service.set(field, value)
    except PydanticValidationError as e:
        problems = "; ".join(error["msg"] for error in e.errors())
        raise click.ClickException(f"Invalid value for {field}: {problems}") from e

    service.save()
    click.echo(f"{field} = {service.get(field)}")


@config.command(name="reset")
@click.option("--field", "-f", type=click.Choice(_field_names()), default=None, help="Reset one field only")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def reset(config_file: Path | None, field: str | None, yes: bool):
    """Reset configuration (or one field) to defaults."""
    target = field or "all settings"
    if not yes:
        click.confirm(f"Reset {target} to defaults?", abort=True)

    service = _open(config_file)
    service.reset(field)
    service.save()
    click.echo(f"Reset {target} to defaults")
