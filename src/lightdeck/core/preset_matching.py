"""Structural comparison of effect settings against cached presets."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lightdeck.models.effect import PresetCollection


class PresetSource(str, Enum):
    USER = "user"
    BUILT_IN = "built_in"


@dataclass(frozen=True)
class PresetMatch:
    name: str
    source: PresetSource


def deep_equal(a: Any, b: Any) -> bool:
    """
    Recursive structural equality of JSON-like values.

    Mappings are equal when they have the same key set and equal values.
    Booleans never equal numbers; ints and floats compare by value.
    """
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[key], b[key]) for key in a)

    if _is_list(a) and _is_list(b):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b, strict=True))

    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if type(a) is not type(b) and not (_is_number(a) and _is_number(b)):
        return False
    return a == b


def find_matching_preset(
    settings: Mapping[str, Any] | None, presets: PresetCollection | None
) -> PresetMatch | None:
    """
    Name of the first preset whose config equals `settings`.

    User presets are checked before built-in ones, each in the order the
    engine listed them.
    """
    if settings is None or presets is None:
        return None

    for source, collection in (
        (PresetSource.USER, presets.user),
        (PresetSource.BUILT_IN, presets.built_in),
    ):
        for name, preset in collection.items():
            if deep_equal(settings, preset.config):
                return PresetMatch(name=name, source=source)
    return None


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
