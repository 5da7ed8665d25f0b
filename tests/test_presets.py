import json

import pytest

from tubesync.presets import (
    EffectPreset,
    LedConfig,
    TubeLayout,
    TubeSetting,
    load_effects,
    load_layouts,
    save_effects,
    save_layouts,
)

MAC_A = "020000000001"
MAC_B = "020000000002"


def sample_layout():
    return TubeLayout("stage", 3, {MAC_A: TubeSetting(10, 1), MAC_B: TubeSetting(20, 2)})


def test_empty_preset_defaults():
    preset = EffectPreset.empty("first", 7)
    assert preset.name == "first"
    assert preset.preset_id == 7
    assert preset.config.led_mode == 1
    assert preset.config.brightness == 10
    assert preset.config.parameter1 == 7
    assert preset.config.parameter2 == 6
    assert preset.config.parameter3 == 6
    assert preset.config.speed_factor == 4
    assert preset.config.offset == 0
    assert preset.layout.name == "empty"


def test_effect_json_keys():
    data = EffectPreset.empty("first", 1).to_json()
    assert set(data) == {
        "tubepresets", "name", "id", "led_mode", "speed_factor",
        "brightness", "parameter1", "parameter2", "parameter3", "modifiers",
    }
    assert data["id"] == 1


def test_effect_round_trip_drops_offset():
    config = LedConfig(3, 5, 100, 1, 2, 3, 0b10100000, offset=9)
    preset = EffectPreset("strobe", 4, config, sample_layout())
    restored = EffectPreset.from_json(preset.to_json())
    assert restored.config.offset == 0
    assert restored.config.led_mode == 3
    assert restored.config.modifiers == 0b10100000
    assert restored.layout == preset.layout
    assert restored.name == "strobe"


def test_effect_from_json_missing_fields_default():
    restored = EffectPreset.from_json({})
    assert restored.name == ""
    assert restored.preset_id == 0
    assert restored.config == LedConfig()
    assert restored.layout.tubes == {}


def test_layout_round_trip():
    layout = sample_layout()
    assert TubeLayout.from_json(layout.to_json()) == layout


def test_effects_file_round_trip(tmp_path):
    path = tmp_path / "effects.json"
    presets = [EffectPreset.empty("a", 0), EffectPreset("b", 1, LedConfig(2), sample_layout())]
    save_effects(presets, path)
    assert isinstance(json.loads(path.read_text()), list)
    assert load_effects(path) == presets


def test_layouts_file_round_trip(tmp_path):
    path = tmp_path / "tubes.json"
    layouts = [sample_layout(), TubeLayout()]
    save_layouts(layouts, path)
    assert load_layouts(path) == layouts


def test_non_array_file_rejected(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text('{"name": "x"}')
    with pytest.raises(ValueError):
        load_effects(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_layouts(tmp_path / "missing.json")