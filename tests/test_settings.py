"""
Settings persistence tests.
"""
import json

import pytest

from grid_split_tool import settings as settings_mod
from grid_split_tool.settings import (
    DEFAULT_SETTINGS,
    load_settings,
    save_settings,
    validate_merge,
    validate_settings,
)


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    monkeypatch.setattr(settings_mod, "config_dir", lambda: tmp_path)
    return tmp_path


def _custom_settings():
    return {
        "segments": 3,
        "dimensions": {
            "preset": "custom",
            "mode": "mobile",
            "custom": {"width": 600, "segmentHeights": [300, 200], "gap": 12},
        },
        "merge": {"gap_fill": "blur", "gap_size": 40, "solid_color": "#112233"},
    }


class TestLoad:
    def test_missing_file_writes_defaults(self, config_home):
        assert load_settings() == DEFAULT_SETTINGS
        on_disk = json.loads((config_home / "settings.json").read_text(encoding="utf-8"))
        assert on_disk == {"version": 1, "settings": DEFAULT_SETTINGS}

    def test_round_trip(self, config_home):
        save_settings(_custom_settings())
        assert load_settings() == _custom_settings()

    def test_corrupt_file_restores_defaults(self, config_home, caplog):
        (config_home / "settings.json").write_text("{not json", encoding="utf-8")
        assert load_settings() == DEFAULT_SETTINGS
        assert "restoring defaults" in caplog.text

    def test_missing_envelope_restores_defaults(self, config_home):
        (config_home / "settings.json").write_text(json.dumps(_custom_settings()), encoding="utf-8")
        assert load_settings() == DEFAULT_SETTINGS

    def test_invalid_values_restore_defaults(self, config_home):
        bad = _custom_settings()
        bad["segments"] = 9
        envelope = {"version": 1, "settings": bad}
        (config_home / "settings.json").write_text(json.dumps(envelope), encoding="utf-8")
        assert load_settings() == DEFAULT_SETTINGS

    def test_defaults_not_shared(self, config_home):
        loaded = load_settings()
        loaded["merge"]["gap_size"] = 99
        assert DEFAULT_SETTINGS["merge"]["gap_size"] != 99


class TestSave:
    def test_invalid_settings_rejected(self, config_home):
        bad = _custom_settings()
        bad["merge"]["gap_fill"] = "sparkles"
        with pytest.raises(ValueError):
            save_settings(bad)
        assert not (config_home / "settings.json").exists()


class TestValidation:
    def test_defaults_valid(self):
        assert validate_settings(DEFAULT_SETTINGS) == []

    def test_custom_valid(self):
        assert validate_settings(_custom_settings()) == []

    def test_not_a_dict(self):
        assert validate_settings([]) == ["Settings data must be a dict"]

    def test_bad_custom_geometry(self):
        data = _custom_settings()
        data["dimensions"]["custom"] = {"width": 0, "segmentHeights": [100, -5], "gap": -1}
        errors = validate_settings(data)
        assert len(errors) == 3

    def test_unknown_mode(self):
        data = _custom_settings()
        data["dimensions"] = {"preset": "twitter", "mode": "tablet"}
        assert len(validate_settings(data)) == 1

    @pytest.mark.parametrize("merge", [
        {"gap_fill": "none", "gap_size": 201, "solid_color": "#000"},
        {"gap_fill": "none", "gap_size": True, "solid_color": "#000"},
        {"gap_fill": "none", "gap_size": 10, "solid_color": "mauve-ish"},
        {"gap_fill": "none", "gap_size": 10, "solid_color": None},
    ])
    def test_bad_merge_options(self, merge):
        assert len(validate_merge(merge)) == 1
