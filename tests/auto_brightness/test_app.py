from unittest.mock import patch

from typer.testing import CliRunner

from auto_brightness.app import app
from auto_brightness.config_store import ConfigStore
from auto_brightness.models import Settings

runner = CliRunner()


def test_status_shows_settings(tmp_path):
    config_path = tmp_path / "settings.json"
    ConfigStore(config_path).save(Settings(city="Oslo", day_brightness=65))

    result = runner.invoke(app, ["status", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Oslo" in result.output
    assert "65%" in result.output
    assert "Not set" in result.output


def test_apply_disabled_exits_cleanly(tmp_path):
    config_path = tmp_path / "settings.json"
    ConfigStore(config_path).save(Settings(enabled=False))

    with patch("auto_brightness.brightness_service.ScreenBrightnessPrimitive.set_brightness") as set_brightness:
        result = runner.invoke(app, ["apply", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Status: Disabled" in result.output
    set_brightness.assert_not_called()


def test_apply_manual_schedule(tmp_path):
    config_path = tmp_path / "settings.json"
    ConfigStore(config_path).save(Settings(use_sun_schedule=False))

    with patch(
        "auto_brightness.brightness_service.ScreenBrightnessPrimitive.set_brightness",
        return_value=(True, None),
    ) as set_brightness:
        result = runner.invoke(app, ["apply", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Manual schedule" in result.output
    set_brightness.assert_called_once()


def test_apply_failure_exits_with_error(tmp_path):
    config_path = tmp_path / "settings.json"
    ConfigStore(config_path).save(Settings(use_sun_schedule=False))

    with patch(
        "auto_brightness.brightness_service.ScreenBrightnessPrimitive.set_brightness",
        return_value=(False, "No compatible monitor was found."),
    ):
        result = runner.invoke(app, ["apply", "--config", str(config_path)])

    assert result.exit_code == 1
