"""Effect, settings-schema and preset models."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# A single setting value as the engine sends it (number, bool or string)
SettingValue = float | int | bool | str
# Working configuration of one (virtual, effect) pair: setting id -> value
SettingsMap = dict[str, Any]


class EffectInfo(BaseModel):
    """An effect the engine can render."""

    id: str
    name: str


class SliderControl(BaseModel):
    type: Literal["slider"] = "slider"
    min: float
    max: float
    step: float


class CheckboxControl(BaseModel):
    type: Literal["checkbox"] = "checkbox"


class ColorPickerControl(BaseModel):
    type: Literal["colorPicker"] = "colorPicker"


class SelectControl(BaseModel):
    type: Literal["select"] = "select"
    options: list[str] = Field(default_factory=list)


Control = Annotated[
    SliderControl | CheckboxControl | ColorPickerControl | SelectControl,
    Field(discriminator="type"),
]


class EffectSetting(BaseModel):
    """One entry of an effect's settings schema (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str = ""
    control: Control
    default_value: SettingValue = Field(alias="defaultValue")


def default_settings(schema: list[EffectSetting]) -> SettingsMap:
    """Materialize `{setting id: default value}` for every entry of a schema."""
    return {setting.id: setting.default_value for setting in schema}


class EffectConfig(BaseModel):
    """A whole effect configuration: effect id plus every setting value.

    This is what the engine stores for presets and embeds in scenes.
    """

    type: str = Field(description="Effect id")
    config: SettingsMap = Field(default_factory=dict)

    @property
    def effect_id(self) -> str:
        return self.type


class PresetCollection(BaseModel):
    """Presets of one effect, partitioned into user and built-in."""

    user: dict[str, EffectConfig] = Field(default_factory=dict)
    built_in: dict[str, EffectConfig] = Field(default_factory=dict)

    def get(self, name: str) -> EffectConfig | None:
        """Look a preset up by name, user presets first."""
        return self.user.get(name) or self.built_in.get(name)

    @property
    def names(self) -> list[str]:
        return list(self.user) + [name for name in self.built_in if name not in self.user]
