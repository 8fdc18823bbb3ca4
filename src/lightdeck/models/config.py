"""Application configuration and local preference models."""

from pathlib import Path

from pydantic import BaseModel, Field, field_serializer

from lightdeck.model_manager.persistence import PydanticPersistence

from .dsp import DspSettings

DEFAULT_HOME = Path.home() / ".lightdeck"


class AppConfig(BaseModel):
    """Application configuration and settings."""

    # Paths
    preferences_path: Path = Field(
        default_factory=lambda: DEFAULT_HOME / "preferences.json",
        description="Where local preferences (audio device, DSP draft) are kept",
    )
    log_dir: Path = Field(
        default_factory=lambda: DEFAULT_HOME / "logs",
        description="Directory for rotating log files",
    )

    # Debounce windows
    live_settings_debounce_ms: int = Field(
        default=300, ge=0, description="Delay before live DSP settings are pushed"
    )
    target_fps_debounce_ms: int = Field(
        default=500, ge=0, description="Delay before a target frame rate change is pushed"
    )
    effect_settings_debounce_ms: int = Field(
        default=50, ge=0, description="Delay before effect setting changes are pushed"
    )

    # Preview
    preview_width: int = Field(default=64, ge=1, description="Columns used by strip previews")

    @field_serializer("preferences_path", "log_dir")
    def serialize_path(self, path: Path) -> str:
        """Serialize Path to string."""
        return str(path)

    @classmethod
    def default_path(cls) -> Path:
        return DEFAULT_HOME / "config.json"

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "AppConfig":
        """
        Load config from file or return default.

        Args:
            path: Path to config file. If None, uses default location
                  (~/.lightdeck/config.json).

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        return PydanticPersistence.load_json_or_default(path or cls.default_path(), cls)

    def save(self, path: Path | None = None) -> None:
        """Save config to file (atomic, with backup)."""
        PydanticPersistence.save_json(self, path or self.default_path())


class LocalPreferences(BaseModel):
    """Non-canonical local state kept between runs.

    Engine events always win over anything stored here.
    """

    selected_audio_device: str | None = Field(
        default=None, description="Name of the last selected audio capture device"
    )
    dsp_draft: DspSettings | None = Field(
        default=None, description="Unapplied critical DSP settings from the last session"
    )
