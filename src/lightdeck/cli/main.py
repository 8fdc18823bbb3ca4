"""Main CLI entry point."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import click

from lightdeck import __version__

from .commands import config, matrix_group, settings_group

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".lightdeck" / "logs"


def resolve_log_path(debug: bool, log_file: Optional[Path]) -> Path:
    """Where log output goes for the given flags."""
    if log_file:
        return log_file
    if debug:
        # Debug mode: log to current directory
        return Path.cwd() / "lightdeck-debug.log"
    return DEFAULT_LOG_DIR / "lightdeck.log"


def setup_logging(verbose: int, debug: bool, log_file: Optional[Path], log_level: str) -> Path:
    """
    Configure logging for the application.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug: If True, enable debug mode with file logging
        log_file: Custom log file path (optional)
        log_level: Log level for file logging (DEBUG/INFO/WARNING/ERROR)

    Returns:
        Path of the log file
    """
    if debug or verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    # Explicit log level wins for a custom log file
    if log_file:
        level = getattr(logging, log_level.upper())

    log_path = resolve_log_path(debug, log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Keeps the last 5 files, max 10MB each
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={logging.getLevelName(level)}, file={log_path}")
    return log_path


@click.group()
@click.version_option(version=__version__, prog_name="lightdeck")
@click.option(
    '-v', '--verbose',
    count=True,
    help='Increase verbosity (-v: INFO, -vv: DEBUG)'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Enable debug mode (DEBUG level, logs to ./lightdeck-debug.log)'
)
@click.option(
    '--log-file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Custom log file path'
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Log level for file logging (default: INFO)'
)
def cli(verbose: int, debug: bool, log_file: Optional[Path], log_level: str):
    """
    lightdeck - control plane tools for networked LED controllers.

    \b
    Examples:
      # Show the segments a virtual is composed of
      lightdeck matrix decode --summary virtual.json

      # Build a matrix row from a segment list
      lightdeck matrix encode segments.json

      # Check what an exported settings file contains
      lightdeck settings inspect backup.json

      # Change a debounce window
      lightdeck config set live_settings_debounce_ms 200

      # Debug logging to ./lightdeck-debug.log
      lightdeck --debug settings inspect backup.json
    """
    try:
        setup_logging(verbose, debug, log_file, log_level)
    except OSError as e:
        click.echo(f"Warning: could not open log file: {e}", err=True)


cli.add_command(matrix_group)
cli.add_command(settings_group)
cli.add_command(config)

if __name__ == "__main__":
    cli()
