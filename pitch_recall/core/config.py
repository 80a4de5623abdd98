"""Configuration management for Pitch Recall components.

Each section (``estimator``, ``tracker``, ``session``, ``audio_input``) lives
in its own JSON file under the configuration directory. Files are created
with defaults on first use; values read back are coerced to the type of the
matching default so a hand-edited ``"0.02"`` still works as a float.
"""

from typing import Any, Dict, List, Optional
import copy
import json
import os
import tempfile
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_DIR = os.path.join("~", ".config", "pitch_recall")

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "estimator": {
        "backend": "yin",  # 'yin' (numpy) or 'aubio'
        "min_hz": 70.0,
        "max_hz": 900.0,
        "threshold": 0.12,
    },
    "tracker": {
        "rms_threshold": 0.01,
        "clarity_threshold": 0.5,
        "smoothing_window_ms": 200.0,
    },
    "session": {
        "hold_seconds": 5.0,
        "cents_tolerance": 35.0,
        "voice_mode": "auto",
        "order": "random",
        "wrong_note_cooldown_ms": 3000.0,
    },
    "audio_input": {
        "sample_rate": 44100,
        "frames_per_buffer": 2048,
        "channels": 1,
    },
}


def _coerce(key: str, value: Any, default: Any) -> Any:
    """Cast ``value`` to the type of ``default``; raises ValueError/TypeError."""
    if default is None or value is None:
        return value
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(default, int):
        number = float(value)
        if not number.is_integer():
            raise ValueError(f"{key} must be a whole number, got {value!r}")
        return int(number)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, str):
        return str(value)
    return value


class ConfigManager:
    """Reads, updates and persists the per-section JSON configuration."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory holding the section files, or None for
                ``~/.config/pitch_recall``
        """
        self.config_dir = Path(os.path.expanduser(config_dir or DEFAULT_CONFIG_DIR))
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create configuration directory {self.config_dir}: {e}")

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)
        self.configs: Dict[str, Dict[str, Any]] = {
            name: self.load_config(name, defaults)
            for name, defaults in self.default_configs.items()
        }

    def config_path(self, name: str) -> Path:
        """Path of the JSON file backing section ``name``."""
        return self.config_dir / f"{name}.json"

    def sections(self) -> List[str]:
        """Names of the known configuration sections."""
        return list(self.default_configs)

    def _normalize(self, name: str, raw: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
        config = dict(defaults)
        for key, value in raw.items():
            if key not in defaults:
                # Unknown keys are kept so newer files survive older code
                config[key] = value
                continue
            try:
                config[key] = _coerce(key, value, defaults[key])
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring {name}.{key}={value!r}: {e}")
        return config

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load section ``name``, writing the defaults if the file is missing.

        Unreadable files are logged and replaced by the defaults in memory;
        the file itself is left alone so it can be fixed by hand.

        Args:
            name: Section name
            default_config: Values used for missing or invalid keys

        Returns:
            Configuration dictionary
        """
        config_file = self.config_path(name)
        if not config_file.exists():
            config = dict(default_config)
            self.save_config(name, config)
            return config

        try:
            with open(config_file, "r") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("top level is not an object")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {config_file}: {e}")
            return dict(default_config)

        logger.info(f"Loaded configuration from {config_file}")
        return self._normalize(name, raw, default_config)

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Write section ``name`` atomically.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_path(name)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self.config_dir, prefix=f".{name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_name = f.name
                json.dump(config, f, indent=2)
            os.replace(tmp_name, config_file)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Copy of section ``name``; empty for unknown sections."""
        return dict(self.configs.get(name, {}))

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Merge ``updates`` into section ``name`` and save it.

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        merged = dict(self.configs[name])
        merged.update(updates)
        self.configs[name] = self._normalize(name, merged, self.default_configs[name])
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Restore section ``name`` to its defaults and save it."""
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = dict(self.default_configs[name])
        return self.save_config(name, self.configs[name])
