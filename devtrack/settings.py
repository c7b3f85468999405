"""User settings, persisted as one JSON blob under a well-known key.

Every field has a documented default. Missing, unknown or wrongly-typed
fields fall back to those defaults, so a damaged settings blob can never stop
scanning.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields, is_dataclass, replace
from typing import Any, Self

from devtrack.errors import ConfigError

logger = logging.getLogger(__name__)

USER_SETTINGS_KEY = "user_settings"

MIN_INTERVAL_MINUTES = 1

AI_CREATE_MODES = ("suggest", "auto")


@dataclass(frozen=True)
class ScanSettings:
    enabled: bool = True
    interval_minutes: int = 30
    scan_on_startup: bool = True
    auto_classify: bool = True
    auto_summarize: bool = True


@dataclass(frozen=True)
class MajorUpdateThreshold:
    files_changed: int = 20
    additions: int = 500
    deletions: int = 500


@dataclass(frozen=True)
class VersionSettings:
    auto_refresh: bool = True
    refresh_minutes: int = 30
    auto_milestones_from_tags: bool = True
    # Stored and round-tripped; no scan behavior reads them.
    auto_major_updates: bool = True
    major_update_threshold: MajorUpdateThreshold = field(default_factory=MajorUpdateThreshold)
    ai_create_mode: str = "suggest"


@dataclass(frozen=True)
class NotificationSettings:
    daily_summary: bool = True
    todo_reminder: bool = True
    stale_project: bool = False


@dataclass(frozen=True)
class UserSettings:
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)
    version: VersionSettings = field(default_factory=VersionSettings)
    theme: str = "dark"
    language: str = "en"

    @classmethod
    def from_json(cls, text: str) -> Self:
        """Parse a settings blob. Raises ConfigError only if it is not a JSON object."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings are not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Settings must be a JSON object")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        scan = _build_section(ScanSettings, data.get("scan"))
        if scan.interval_minutes < MIN_INTERVAL_MINUTES:
            scan = replace(scan, interval_minutes=MIN_INTERVAL_MINUTES)
        version = _build_section(VersionSettings, data.get("version"))
        if version.ai_create_mode not in AI_CREATE_MODES:
            version = replace(version, ai_create_mode="suggest")
        return cls(
            notifications=_build_section(NotificationSettings, data.get("notifications")),
            scan=scan,
            version=version,
            theme=_coerce(data.get("theme"), str, "dark"),
            language=_coerce(data.get("language"), str, "en"),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def with_value(self, dotted_key: str, raw_value: str) -> Self:
        """Return a copy with one setting changed, e.g. ("scan.interval_minutes", "15")."""
        data = self.to_dict()
        *path, key = dotted_key.split(".")

        if not path:
            if key not in ("theme", "language"):
                raise ConfigError(f"Unknown setting: {dotted_key}")
            data[key] = raw_value
            return type(self).from_dict(data)

        section: Any = data
        for name in path:
            section = section.get(name) if isinstance(section, dict) else None
        if not isinstance(section, dict) or key not in section or isinstance(section[key], dict):
            raise ConfigError(f"Unknown setting: {dotted_key}")

        current = section[key]
        section[key] = _parse_value(raw_value, type(current), dotted_key)
        return type(self).from_dict(data)


def load_user_settings(raw: str | None) -> UserSettings:
    """Resolve a stored blob to settings, falling back to defaults on any problem."""
    if raw is None:
        return UserSettings()
    try:
        return UserSettings.from_json(raw)
    except ConfigError as e:
        logger.warning("Ignoring malformed user settings, using defaults: %s", e)
        return UserSettings()


def _build_section(section_cls, data: Any):
    if not isinstance(data, dict):
        return section_cls()
    defaults = section_cls()
    values = {}
    for f in fields(section_cls):
        default = getattr(defaults, f.name)
        if is_dataclass(default):
            values[f.name] = _build_section(type(default), data.get(f.name))
        else:
            values[f.name] = _coerce(data.get(f.name), type(default), default)
    return section_cls(**values)


def _coerce(value: Any, expected: type, default: Any) -> Any:
    if value is None:
        return default
    # bool is a subclass of int; keep them apart
    if expected is int and isinstance(value, bool):
        return default
    if expected is int and isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, expected):
        return value
    return default


def _parse_value(raw: str, expected: type, key: str) -> Any:
    if expected is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigError(f"{key} expects true/false, got '{raw}'")
    if expected is int:
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigError(f"{key} expects an integer, got '{raw}'") from e
    return raw
