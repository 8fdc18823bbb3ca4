"""Allow running as `python -m lightdeck`."""

from lightdeck.cli.main import cli

if __name__ == "__main__":
    cli()
