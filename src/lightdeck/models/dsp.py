"""Audio analysis (DSP) settings model."""

from typing import Any, Literal

from pydantic import BaseModel, Field

# Applied immediately through a debounced push
LIVE_KEYS: frozenset[str] = frozenset({"agc_attack", "agc_decay", "audio_delay_ms"})
# Held in a pending copy until applied together with an audio restart
CRITICAL_KEYS: frozenset[str] = frozenset(
    {"smoothing_factor", "num_bands", "min_freq", "max_freq", "filterbank_type"}
)


class BladePlusParams(BaseModel):
    """Parameters of the tunable mel filterbank curve."""

    log_base: float = 10.0
    multiplier: float = 2595.0
    divisor: float = 700.0


class BladePlusFilterbank(BaseModel):
    BladePlus: BladePlusParams = Field(default_factory=BladePlusParams)


# Serialized as the string "Blade" or as {"BladePlus": {...}}
FilterbankType = Literal["Blade"] | BladePlusFilterbank


class DspSettings(BaseModel):
    """Engine-wide audio analysis settings."""

    smoothing_factor: float = Field(default=0.5, ge=0.0, le=1.0)
    agc_attack: float = Field(default=0.01, ge=0.0)
    agc_decay: float = Field(default=0.1, ge=0.0)
    audio_delay_ms: int = Field(default=0, ge=0)
    num_bands: int = Field(default=128, ge=1)
    min_freq: float = Field(default=20.0, ge=0.0)
    max_freq: float = Field(default=18000.0, gt=0.0)
    filterbank_type: FilterbankType = "Blade"

    def with_value(self, key: str, value: Any) -> "DspSettings":
        """Return a validated copy with one field replaced."""
        if key not in DspSettings.model_fields:
            raise KeyError(key)
        data = self.model_dump()
        data[key] = value
        return DspSettings.model_validate(data)

    def diff(self, other: "DspSettings") -> list[str]:
        """Field names whose values differ structurally from `other`."""
        mine = self.model_dump(mode="json")
        theirs = other.model_dump(mode="json")
        return [key for key in DspSettings.model_fields if mine[key] != theirs[key]]
