"""Effect presets and tube layouts, stored as JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Union

PathLike = Union[str, Path]


@dataclass
class LedConfig:
    """The effect settings sent to every tube."""

    led_mode: int = 0
    speed_factor: int = 0
    brightness: int = 0
    parameter1: int = 0
    parameter2: int = 0
    parameter3: int = 0
    modifiers: int = 0
    offset: int = 0


@dataclass
class TubeSetting:
    """Timing delay and group of one tube."""

    delay: int = 0
    group: int = 0


@dataclass
class TubeLayout:
    """A named arrangement of tube delays and groups, keyed by MAC."""

    name: str = "empty"
    layout_id: int = 0
    tubes: dict[str, TubeSetting] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "id": self.layout_id,
            "tubes": {
                mac: {"delay": setting.delay, "group": setting.group}
                for mac, setting in self.tubes.items()
            },
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "TubeLayout":
        tubes = {
            str(mac): TubeSetting(int(value.get("delay", 0)), int(value.get("group", 0)))
            for mac, value in dict(obj.get("tubes", {})).items()
        }
        return cls(str(obj.get("name", "")), int(obj.get("id", 0)), tubes)


@dataclass
class EffectPreset:
    """A named effect configuration together with its tube layout."""

    name: str
    preset_id: int
    config: LedConfig = field(default_factory=LedConfig)
    layout: TubeLayout = field(default_factory=TubeLayout)

    @classmethod
    def empty(cls, name: str, preset_id: int) -> "EffectPreset":
        """A preset with the default effect settings and an empty layout."""
        config = LedConfig(
            led_mode=1,
            brightness=10,
            parameter1=7,
            parameter2=6,
            parameter3=6,
            speed_factor=4,
            offset=0,
        )
        return cls(name, preset_id, config, TubeLayout("empty"))

    def to_json(self) -> dict[str, Any]:
        return {
            "tubepresets": self.layout.to_json(),
            "name": self.name,
            "id": self.preset_id,
            "led_mode": self.config.led_mode,
            "speed_factor": self.config.speed_factor,
            "brightness": self.config.brightness,
            "parameter1": self.config.parameter1,
            "parameter2": self.config.parameter2,
            "parameter3": self.config.parameter3,
            "modifiers": self.config.modifiers,
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "EffectPreset":
        """Build a preset from JSON; the offset is not stored and resets to 0."""
        config = LedConfig(
            led_mode=int(obj.get("led_mode", 0)),
            speed_factor=int(obj.get("speed_factor", 0)),
            brightness=int(obj.get("brightness", 0)),
            parameter1=int(obj.get("parameter1", 0)),
            parameter2=int(obj.get("parameter2", 0)),
            parameter3=int(obj.get("parameter3", 0)),
            modifiers=int(obj.get("modifiers", 0)),
            offset=0,
        )
        layout = TubeLayout.from_json(obj.get("tubepresets", {}) or {})
        return cls(str(obj.get("name", "")), int(obj.get("id", 0)), config, layout)


def _read_array(path: PathLike) -> list[Mapping[str, Any]]:
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array")
    return data


def _write_array(items: Iterable[dict[str, Any]], path: PathLike) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(list(items), handle, indent=4)


def load_effects(path: PathLike) -> list[EffectPreset]:
    """Read effect presets from a JSON array file."""
    return [EffectPreset.from_json(obj) for obj in _read_array(path)]


def save_effects(presets: Iterable[EffectPreset], path: PathLike) -> None:
    """Write effect presets to a JSON array file."""
    _write_array((preset.to_json() for preset in presets), path)


def load_layouts(path: PathLike) -> list[TubeLayout]:
    """Read tube layouts from a JSON array file."""
    return [TubeLayout.from_json(obj) for obj in _read_array(path)]


def save_layouts(layouts: Iterable[TubeLayout], path: PathLike) -> None:
    """Write tube layouts to a JSON array file."""
    _write_array((layout.to_json() for layout in layouts), path)