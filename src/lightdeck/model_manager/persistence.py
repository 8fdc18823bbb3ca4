"""Shared utilities for Pydantic model persistence.

Used for the two files lightdeck keeps on disk: the application config
and the local preferences (selected audio device, critical-settings draft).
Neither is canonical; engine state always comes from the engine.

Safety Features:
    - Automatic .bak backups before overwriting files
    - Atomic writes using temp file + rename
    - Never auto-saves over corrupted files
    - Only auto-saves when file is missing (FileNotFoundError)
"""

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from lightdeck.exceptions import ConfigFileInvalidError, ConfigurationError, wrap_pydantic_error

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class PydanticPersistence:
    """
    Stateless helpers for loading and saving Pydantic models as JSON.

    Example Usage:
        ```python
        prefs = PydanticPersistence.load_json(Path("preferences.json"), LocalPreferences)
        PydanticPersistence.save_json(prefs, Path("preferences.json"))
        ```
    """

    @staticmethod
    def load_json(path: Path, model_type: type[T]) -> T:
        """
        Load and validate a Pydantic model from a JSON file.

        Args:
            path: Path to the JSON file to load
            model_type: The Pydantic model class to validate against

        Returns:
            Validated model instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigFileInvalidError: If the JSON syntax is invalid or the file is empty
            ConfigValidationError: If the JSON content fails Pydantic validation
        """
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            json_content = path.read_text(encoding="utf-8")

            if not json_content or not json_content.strip():
                raise ConfigFileInvalidError(str(path), "File is empty")

            model = model_type.model_validate_json(json_content)

            logger.debug(f"Loaded {model_type.__name__} from {path}")
            return model

        except ValidationError as e:
            logger.error(f"Validation error loading {model_type.__name__} from {path}: {e}")
            raise wrap_pydantic_error(e, str(path)) from e

        except ConfigurationError:
            raise

        except OSError as e:
            logger.error(f"Could not read {path}: {e}")
            raise ConfigFileInvalidError(str(path), f"Unreadable file: {e}") from e

    @staticmethod
    def save_json(
        data: BaseModel,
        path: Path,
        indent: int = 2,
        create_parents: bool = True,
        backup: bool = True,
    ) -> None:
        """
        Save a Pydantic model to a JSON file with automatic backup and atomic write.

        Args:
            data: The Pydantic model instance to save
            path: Path where the file should be saved
            indent: JSON indentation level (default: 2 spaces)
            create_parents: Create parent directories if they don't exist (default: True)
            backup: Create .bak backup before overwriting existing file (default: True)

        Raises:
            OSError: If the file cannot be written (permission denied, disk full, etc.)
        """
        try:
            if create_parents and path.parent:
                path.parent.mkdir(parents=True, exist_ok=True)

            if backup and path.exists():
                backup_path = path.with_suffix(path.suffix + ".bak")
                shutil.copy2(path, backup_path)
                logger.debug(f"Created backup: {backup_path}")

            json_content = data.model_dump_json(indent=indent)

            # Atomic write: temp file first, then rename over the target
            temp_path = path.with_suffix(path.suffix + ".tmp")
            try:
                temp_path.write_text(json_content, encoding="utf-8")
                temp_path.replace(path)
                logger.debug(f"Saved {type(data).__name__} to {path}")
            finally:
                if temp_path.exists():
                    temp_path.unlink()

        except OSError as e:
            logger.error(f"OS error saving {type(data).__name__} to {path}: {e}")
            raise

    @staticmethod
    def load_json_or_default(
        path: Path, model_type: type[T], default_factory: Callable | None = None
    ) -> T:
        """
        Load a model from JSON, or return a default if the file doesn't exist.

        Corrupted files still raise; only a missing file yields the default.
        The default is not written to disk.
        """
        try:
            return PydanticPersistence.load_json(path, model_type)
        except FileNotFoundError:
            logger.info(f"File not found: {path}, using default {model_type.__name__}")
            return default_factory() if default_factory else model_type()

    @staticmethod
    def ensure_valid_or_create(
        path: Path,
        model_type: type[T],
        default_factory: Callable | None = None,
        auto_save: bool = True,
    ) -> T:
        """
        Ensure a valid JSON file exists, creating a default if needed.

        1. Tries to load the file
        2. If file doesn't exist: creates default and saves (if auto_save=True)
        3. If file is corrupted: returns a default but DOES NOT save over the file
        """
        try:
            return PydanticPersistence.load_json(path, model_type)
        except FileNotFoundError:
            logger.info(f"File not found: {path}, creating default {model_type.__name__}")
            instance = default_factory() if default_factory else model_type()

            if auto_save:
                PydanticPersistence.save_json(instance, path, backup=False)
                logger.info(f"Saved default {model_type.__name__} to {path}")

            return instance

        except ConfigurationError as e:
            logger.error(f"Failed to load {path}: {e.user_message}")
            logger.warning(
                f"Using default {model_type.__name__} "
                f"(existing file NOT overwritten - manual recovery may be possible)"
            )
            return default_factory() if default_factory else model_type()
