from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from tabata.core.protection import EAR_REST_DURATION, ProtectionConfig


logger = logging.getLogger(__name__)

SETTINGS_KEY = "app_settings"


@dataclass(frozen=True)
class AppSettings:
    # Default Values
    sound_on: bool = True
    voice_on: bool = True
    notifications_on: bool = False
    sonic_mode_on: bool = False
    sonic_mode_cycles: int = 3
    ear_rest_seconds: int = EAR_REST_DURATION

    @staticmethod
    def from_dict(data: Any) -> AppSettings:
        """Build settings from a stored payload, keeping defaults for missing or unreadable values."""
        defaults = AppSettings()
        if not isinstance(data, dict):
            return defaults
        values: dict[str, Any] = {}
        for f in fields(AppSettings):
            if f.name not in data:
                continue
            try:
                values[f.name] = _coerce(data[f.name], type(getattr(defaults, f.name)))
            except (TypeError, ValueError, OverflowError):
                logger.warning("Ignoring unreadable setting %s=%r", f.name, data[f.name])
        return replace(defaults, **values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def update(self, **changes: Any) -> AppSettings:
        """Copy with the known keys in ``changes`` applied; unknown keys are ignored."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in known})

    def protection_config(self) -> ProtectionConfig:
        return ProtectionConfig(cycles=self.sonic_mode_cycles, ear_rest_seconds=self.ear_rest_seconds)


def _coerce(value: Any, kind: type) -> Any:
    if kind is bool:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes", "on"):
                return True
            if lowered in ("false", "0", "no", "off"):
                return False
            raise ValueError(f"Not a flag: {value!r}")
        if not isinstance(value, (bool, int, float)):
            raise TypeError(f"Not a flag: {value!r}")
        return bool(value)
    if isinstance(value, bool):
        raise TypeError(f"Expected a number, got {value!r}")
    return kind(value)
