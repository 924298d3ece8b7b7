"""
Tests for Configuration and Logging
====================================
"""

import logging

import pytest

from kiosk.modules.detection.proximity_trigger import ProximityConfig
from kiosk.modules.recognition.gesture_classifier import GestureClassifierConfig
from kiosk.modules.utils.config import Config
from kiosk.modules.utils.logger import KioskEventLogger, setup_logging


@pytest.fixture
def config():
    Config.reset()
    yield Config()
    Config.reset()


class TestConfig:

    def test_singleton(self, config):
        assert Config() is config

    def test_loads_shipped_config(self, config):
        config.load()
        assert config.get("proximity.threshold") == 1.0
        assert config.get("control.gesture_lockout_ms") == 2000
        assert config.recommendation["catalog"] == "config/menu.yaml"

    def test_shipped_config_matches_defaults(self, config):
        config.load()
        assert ProximityConfig.from_dict(config.proximity) == ProximityConfig()
        assert GestureClassifierConfig.from_dict(config.gestures) == GestureClassifierConfig()

    def test_missing_file_uses_defaults(self, config, tmp_path):
        config.load(str(tmp_path / "missing.yaml"))
        assert config.get("camera.width", 640) == 640
        assert config.camera == {}

    def test_get_nested_default(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("camera:\n  width: 320\n")
        config.load(str(path))
        assert config.get("camera.width") == 320
        assert config.get("camera.height", 240) == 240
        assert config.get("camera.width.deep", "x") == "x"

    def test_validation_warns_on_bad_types(self, config, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("camera:\n  width: wide\n")
        with caplog.at_level(logging.WARNING):
            config.load(str(path))
        assert "camera.width: expected int" in caplog.text
        assert "Missing config section: 'proximity'" in caplog.text

    def test_resolve_path(self, config):
        assert config.resolve_path("/abs/menu.yaml") == "/abs/menu.yaml"
        assert config.resolve_path("config/menu.yaml").endswith("config/menu.yaml")

    def test_set_overrides_loaded_value(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("camera:\n  device_id: 0\n  width: 320\n")
        config.load(str(path))
        config.set("camera.device_id", 2)
        assert config.camera == {"device_id": 2, "width": 320}

    def test_set_creates_missing_sections(self, config, tmp_path):
        config.load(str(tmp_path / "missing.yaml"))
        config.set("weather.latitude", 35.1)
        assert config.get("weather.latitude") == 35.1


class TestLogging:

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "kiosk.log"
        root = setup_logging(level="DEBUG", log_file=str(log_file))
        try:
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2
            assert log_file.parent.exists()
        finally:
            for handler in list(root.handlers):
                handler.close()
            root.handlers.clear()

    def test_event_logger_history(self):
        events = KioskEventLogger(max_history=3)
        events.log_trigger(0.8)
        events.log_gesture("closed-fist", "menu")
        events.log_gesture("up", None, accepted=False)
        events.log_reset(1)

        assert events.total_events == 3
        assert [e["kind"] for e in events.get_history()] == ["gesture", "gesture", "reset"]
        assert len(events.get_history(kind="gesture")) == 2
        assert events.get_history(last_n=1)[0]["generation"] == 1
