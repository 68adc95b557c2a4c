import json

import pytest

from orrery.config import ViewerConfig, load_config, step_seconds
from orrery.errors import ConfigError

from conftest import DAY, T0


class TestStepSeconds:
    @pytest.mark.parametrize("unit, amount, expected", [
        ("day", 1, DAY),
        ("day", 3, 3 * DAY),
        ("month", 1, 30 * DAY),
        ("year", 2, 2 * 365 * DAY),
        ("century", 1, 100 * 365 * DAY),
        ("millennium", 1, 1000 * 365 * DAY),
    ])
    def test_calendar_approximations(self, unit, amount, expected):
        assert step_seconds(unit, amount) == expected

    @pytest.mark.parametrize("unit, amount", [
        ("week", 1),
        ("day", 0),
        ("day", -2),
        ("day", 1.5),
        ("day", True),
    ])
    def test_invalid(self, unit, amount):
        with pytest.raises(ValueError):
            step_seconds(unit, amount)


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config(None, env={})
        assert config.api_url == "http://localhost:8080"
        assert config.start == T0
        assert config.step_seconds == DAY
        assert config.trail_limit is None

    def test_missing_file_means_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "nope.json"), env={}) == ViewerConfig()

    def test_file_values(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps({
            "api_url": "http://sim:9000",
            "step_unit": "year",
            "step_amount": 2,
            "viewport": [640, 480],
            "trail_limit": 500,
            "backfill": False,
            "unknown_key": "ignored",
        }), encoding="utf-8")
        config = load_config(str(path), env={})
        assert config.api_url == "http://sim:9000"
        assert config.step_seconds == 2 * 365 * DAY
        assert config.viewport == (640, 480)
        assert config.trail_limit == 500
        assert config.backfill is False
        assert config.planar_scale().viewport == (640, 480)

    def test_env_overrides(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps({"api_url": "http://file:1"}), encoding="utf-8")
        config = load_config(str(path), env={"ORRERY_API_URL": "http://env:2", "ORRERY_LOG_LEVEL": "debug"})
        assert config.api_url == "http://env:2"
        assert config.log_level == "debug"

    def test_command_line_overrides_win(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps({"api_url": "http://file:1"}), encoding="utf-8")
        config = load_config(str(path), env={"ORRERY_API_URL": "http://env:2"},
                             overrides={"api_url": "http://cli:3", "log_level": None})
        assert config.api_url == "http://cli:3"
        assert config.log_level == "INFO"

    def test_invalid_command_line_log_level(self):
        with pytest.raises(ConfigError):
            load_config(None, env={}, overrides={"log_level": "CHATTY"})

    @pytest.mark.parametrize("data", [
        {"step_unit": "fortnight"},
        {"step_amount": 0},
        {"step_amount": "1"},
        {"start_instant": "soon"},
        {"padding": "wide"},
        {"viewport": [0, 100]},
        {"trail_limit": 0},
        {"backfill": "yes"},
        {"request_timeout_s": 0},
        {"history_abs_tolerance": -1},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, tmp_path, data):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path), env={})

    def test_broken_json(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path), env={})

    def test_spatial_scale_uses_linear_radii(self):
        spatial = ViewerConfig().spatial_scale()
        assert spatial.radius_model.mode == "linear"
        assert spatial.position_divisor == 1e9
