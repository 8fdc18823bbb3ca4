"""Settings document commands."""

from pathlib import Path

import click

from lightdeck.exceptions import LightDeckError, format_error_for_display
from lightdeck.models import EngineSettings, FullConfiguration, UiSettings, parse_settings_document


@click.group(name="settings")
def settings_group():
    """Inspect exported settings documents."""
    pass


def _describe_ui(ui: UiSettings, indent: str = "") -> None:
    click.echo(f"{indent}Selected effects: {len(ui.selected_effects)}")
    for virtual_id, effect_id in sorted(ui.selected_effects.items()):
        configured = len(ui.effect_settings.get(virtual_id, {}))
        click.echo(f"{indent}  {virtual_id}: {effect_id} ({configured} configured)")


def _describe_engine(engine: dict, indent: str = "") -> None:
    click.echo(f"{indent}Devices: {len(engine.get('devices') or {})}")
    click.echo(f"{indent}Virtuals: {len(engine.get('virtuals') or {})}")
    other = sorted(key for key in engine if key not in ("devices", "virtuals"))
    if other:
        click.echo(f"{indent}Other sections: {', '.join(other)}")


@settings_group.command(name="inspect")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect_settings(path: Path):
    """Show which kind of settings document PATH is and what it contains."""
    try:
        document = parse_settings_document(path.read_text(encoding="utf-8"))
    except LightDeckError as e:
        message, hint = format_error_for_display(e)
        if hint:
            message += f"\n{hint}"
        raise click.ClickException(message) from e

    click.echo(f"Format: {document.kind}")
    if isinstance(document, FullConfiguration):
        if document.engine_state is not None:
            click.echo("Engine state:")
            _describe_engine(document.engine_state, indent="  ")
        if document.frontend_state is not None:
            click.echo("Frontend state:")
            _describe_ui(document.frontend_state, indent="  ")
    elif isinstance(document, EngineSettings):
        _describe_engine(document.model_dump())
    else:
        _describe_ui(document)
