from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")


def default_settings_path() -> str:
    env = (os.getenv("PNGQUANT_TUNER_SETTINGS") or "").strip()
    if env:
        return env
    return str(Path.home() / ".pngquant_tuner" / "settings.json")


class SettingsManager:
    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "pngquant_path": None,
        "quiescence_ms": 1000,
        "compress_timeout": None,
        "scratch_dir": None,
        "last_parameters": {"quality": 50, "colors": 128, "dither": 0.5, "speed": 7},
    }

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.settings_path) or ".", exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except (OSError, TypeError) as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    @property
    def quiescence_ms(self) -> int:
        try:
            value = int(self.get("quiescence_ms"))
        except (TypeError, ValueError):
            _logger.warning("invalid quiescence_ms: %r", self.get("quiescence_ms"))
            return int(self.DEFAULTS["quiescence_ms"])
        return max(0, value)

    @property
    def compress_timeout(self) -> float | None:
        val = self.get("compress_timeout")
        if val is None:
            return None
        try:
            timeout = float(val)
        except (TypeError, ValueError):
            _logger.warning("invalid compress_timeout: %r", val)
            return None
        return timeout if timeout > 0 else None

    @property
    def pngquant_path(self) -> str | None:
        val = self.get("pngquant_path")
        return val if isinstance(val, str) and val.strip() else None

    @property
    def scratch_dir(self) -> str | None:
        val = self.get("scratch_dir")
        return val if isinstance(val, str) and val.strip() else None

    @property
    def last_parameters(self) -> dict[str, Any]:
        val = self.get("last_parameters")
        if isinstance(val, dict):
            merged = dict(self.DEFAULTS["last_parameters"])
            merged.update(val)
            return merged
        return dict(self.DEFAULTS["last_parameters"])
