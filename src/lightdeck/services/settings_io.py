"""Import and export of settings documents."""

import logging
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from lightdeck.core.store import StateStore
from lightdeck.engine.client import EngineClient
from lightdeck.exceptions import CommandError, ValidationError
from lightdeck.models.import_document import (
    EngineSettings,
    FullConfiguration,
    SettingsDocument,
    UiSettings,
    parse_settings_document,
)

logger = logging.getLogger(__name__)

_json_object = TypeAdapter(dict[str, Any])


class SettingsIO:
    """
    Reads and writes settings documents.

    Engine parts are handed to the engine verbatim followed by a reload;
    UI parts (selected effects and their settings) go straight into the
    store.
    """

    def __init__(self, store: StateStore, client: EngineClient):
        self._store = store
        self._client = client

    @staticmethod
    def parse(text: str) -> SettingsDocument:
        """Recognize a document's shape without importing it."""
        return parse_settings_document(text)

    async def import_settings(self, text: str) -> SettingsDocument:
        """
        Import a settings document.

        Raises:
            SettingsDocumentError: not JSON, or not a JSON object
            UnrecognizedFormatError: no known shape matched
            CommandError: the engine rejected its part (the UI part is then
                not applied either)
        """
        document = self.parse(text)

        if isinstance(document, FullConfiguration):
            if document.engine_state is not None:
                await self._import_engine(_json_object.dump_json(document.engine_state).decode())
            if document.frontend_state is not None:
                self._apply_ui(document.frontend_state)
        elif isinstance(document, EngineSettings):
            await self._import_engine(document.model_dump_json())
        else:
            self._apply_ui(document)

        logger.info(f"Imported {document.kind}")
        return document

    async def export_settings(self, include_engine: bool = True, include_frontend: bool = True) -> str:
        """
        Build a full configuration export as indented JSON.

        Raises:
            ValidationError: neither part was requested
            CommandError: the engine export failed
        """
        if not include_engine and not include_frontend:
            raise ValidationError("Choose at least one part to export")

        engine_state = None
        if include_engine:
            raw = await self._client.export_settings()
            try:
                engine_state = _json_object.validate_json(raw)
            except PydanticValidationError as e:
                raise CommandError(
                    "export_settings", "Engine returned an unreadable export",
                    technical_message=f"export_settings returned invalid JSON: {e}",
                ) from e

        frontend_state = None
        if include_frontend:
            state = self._store.get_state()
            frontend_state = UiSettings(
                selected_effects=dict(state.selected_effects),
                effect_settings={vid: dict(per) for vid, per in state.effect_settings.items()},
            )

        document = FullConfiguration(engine_state=engine_state, frontend_state=frontend_state)
        return document.model_dump_json(indent=2, by_alias=True, exclude_none=True)

    async def _import_engine(self, data: str) -> None:
        await self._client.import_settings(data)
        await self._client.trigger_reload()
        logger.info("Engine settings imported, reload requested")

    def _apply_ui(self, ui: UiSettings) -> None:
        self._store.set_state(
            selected_effects=dict(ui.selected_effects),
            effect_settings={vid: dict(per) for vid, per in ui.effect_settings.items()},
        )
