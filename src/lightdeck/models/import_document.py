"""Settings documents that can be imported and exported.

Three shapes are recognized, tried in this order:

1. ``FullConfiguration``: ``{"engine_state": {...}, "frontend_state": {...}}``
   (at least one of the two parts)
2. ``EngineSettings``: an engine export, ``{"devices": {...}, "virtuals": {...}, ...}``
3. ``UiSettings``: a UI export, ``{"selectedEffects": {...}, "effectSettings": {...}, ...}``

Anything else is rejected with ``UnrecognizedFormatError``.
"""

import logging
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from lightdeck.exceptions import SettingsDocumentError, UnrecognizedFormatError

from .effect import SettingsMap

logger = logging.getLogger(__name__)

_json_object = TypeAdapter(dict[str, Any])


class EngineSettings(BaseModel):
    """Engine-side settings, passed through to the engine as-is."""

    model_config = ConfigDict(extra="allow")

    kind: ClassVar[str] = "Engine Settings"

    devices: dict[str, Any]
    virtuals: dict[str, Any]


class UiSettings(BaseModel):
    """Client-side effect selections and settings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: ClassVar[str] = "UI Settings"

    selected_effects: dict[str, str] = Field(alias="selectedEffects")
    effect_settings: dict[str, dict[str, SettingsMap]] = Field(alias="effectSettings")


class FullConfiguration(BaseModel):
    """Combined export of engine and UI state."""

    kind: ClassVar[str] = "Full Configuration"

    engine_state: dict[str, Any] | None = None
    frontend_state: UiSettings | None = None

    @model_validator(mode="after")
    def require_a_part(self) -> "FullConfiguration":
        if self.engine_state is None and self.frontend_state is None:
            raise ValueError("needs engine_state or frontend_state")
        return self


SettingsDocument = FullConfiguration | EngineSettings | UiSettings

_DOCUMENT_TYPES: tuple[type[BaseModel], ...] = (FullConfiguration, EngineSettings, UiSettings)


def parse_settings_document(text: str) -> SettingsDocument:
    """
    Parse an imported settings file into one of the known document shapes.

    Raises:
        SettingsDocumentError: If the text is not a JSON object
        UnrecognizedFormatError: If the object matches none of the known shapes
    """
    try:
        data = _json_object.validate_json(text)
    except PydanticValidationError as e:
        raise SettingsDocumentError(
            "Failed to parse JSON file",
            technical_message=f"Settings document is not a JSON object: {e}",
        ) from e

    for document_type in _DOCUMENT_TYPES:
        try:
            document = document_type.model_validate(data)
        except PydanticValidationError as e:
            logger.debug(f"Document is not {document_type.__name__}: {e.error_count()} errors")
            continue
        logger.info(f"Recognized settings document: {document_type.kind}")
        return document

    raise UnrecognizedFormatError(sorted(data))
