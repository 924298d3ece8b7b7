"""
Centralized configuration manager.
Loads config/config.yaml and provides dot-notation access with defaults.

Critical fields are checked against a small schema; problems are logged as
warnings and the component defaults apply.
"""

import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(
    os.path.abspath(__file__)))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

# Schema: required sections and their expected types
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
    },
    "proximity": {
        "reference_width_px": float,
        "threshold": float,
        "tick_interval_ms": int,
        "settle_delay_ms": int,
    },
    "gestures": {
        "static_confidence": float,
        "static_frames": int,
        "movement_threshold": float,
        "directional_frames": int,
    },
    "control": {
        "gesture_lockout_ms": int,
    },
    "recommendation": {
        "catalog": str,
        "top_n": int,
        "weights": dict,
    },
    "weather": {
        "latitude": float,
        "longitude": float,
    },
}


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from YAML. A missing file leaves every default."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            self._data = {}

        self._validate()
        return self

    def _validate(self):
        """Warn about missing sections and mistyped fields."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                warnings.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name not in section:
                    continue
                value = section[field_name]
                if expected_type is float and isinstance(value, (int, float)) \
                        and not isinstance(value, bool):
                    continue
                if not isinstance(value, expected_type):
                    warnings.append(
                        f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                        f"got {type(value).__name__} ({value!r})"
                    )

        for w in warnings:
            logger.warning("Config validation: %s", w)
        if not warnings:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        value = self._data
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value):
        """Override a value using dot notation, creating sections as needed."""
        keys = key_path.split(".")
        node = self._data
        for key in keys[:-1]:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[keys[-1]] = value

    def get_section(self, section: str) -> dict:
        return self._data.get(section, {}) or {}

    def resolve_path(self, path: str) -> str:
        """Resolve a path from the config relative to the project root."""
        if os.path.isabs(path):
            return path
        return os.path.join(_BASE_DIR, path)

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def proximity(self) -> dict:
        return self.get_section("proximity")

    @property
    def gestures(self) -> dict:
        return self.get_section("gestures")

    @property
    def control(self) -> dict:
        return self.get_section("control")

    @property
    def recommendation(self) -> dict:
        return self.get_section("recommendation")

    @property
    def weather(self) -> dict:
        return self.get_section("weather")

    @property
    def models(self) -> dict:
        return self.get_section("models")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
