"""CLI commands for lightdeck."""

from .config import config
from .matrix import matrix_group
from .settings import settings_group

__all__ = ["config", "matrix_group", "settings_group"]
