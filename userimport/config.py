from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable

import yaml

from userimport.domain.models import DEFAULT_MAX_IMPORT_SIZE, DEFAULT_ROLE, ImportConfig
from userimport.errors import ConfigError
from userimport.infra.logging.setup import LOG_LEVELS

ENV_PREFIX = "USERIMPORT_"
MAX_IMPORT_SIZE_LIMIT = 10000
DIRECTORY_BACKENDS = ("sqlite", "api")


@dataclass(frozen=True)
class Settings:
    # Import
    default_role: str = DEFAULT_ROLE
    max_import_size: int = DEFAULT_MAX_IMPORT_SIZE
    logging_enabled: bool = True
    allow_duplicate_emails: bool = False
    csv_delimiter: str = ","
    csv_has_header: bool = True
    activate_users: bool = True
    send_notifications: bool = False

    # Directory
    directory_backend: str = "sqlite"
    data_dir: str = "./data"

    # API
    host: str | None = None
    port: int | None = None
    api_username: str | None = None
    api_password: str | None = None
    tls_skip_verify: bool = False
    ca_file: str | None = None
    timeout_seconds: float = 20.0
    retries: int = 3
    retry_backoff_seconds: float = 0.5

    # Paths / logging
    log_dir: str = "./logs"
    report_dir: str = "./reports"
    log_level: str = "INFO"

    def import_config(self) -> ImportConfig:
        return ImportConfig(
            max_import_size=self.max_import_size,
            default_role=self.default_role,
            logging_enabled=self.logging_enabled,
            allow_duplicate_emails=self.allow_duplicate_emails,
        )

    def api_base_url(self) -> str | None:
        if not self.host:
            return None
        if self.host.startswith(("http://", "https://")):
            base = self.host
        else:
            base = f"https://{self.host}"
        if self.port:
            base = f"{base.rstrip('/')}:{self.port}"
        return base


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in ("1", "true", "yes", "y", "on"):
        return True
    if normalized in ("0", "false", "no", "n", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _parse_str(value: Any) -> str:
    return str(value).strip()


def _parse_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


_PARSERS: dict[str, Callable[[Any], Any]] = {
    "default_role": _parse_str,
    "max_import_size": int,
    "logging_enabled": parse_bool,
    "allow_duplicate_emails": parse_bool,
    "csv_delimiter": str,
    "csv_has_header": parse_bool,
    "activate_users": parse_bool,
    "send_notifications": parse_bool,
    "directory_backend": lambda v: str(v).strip().lower(),
    "data_dir": _parse_str,
    "host": _parse_optional_str,
    "port": _parse_optional_int,
    "api_username": _parse_optional_str,
    "api_password": _parse_optional_str,
    "tls_skip_verify": parse_bool,
    "ca_file": _parse_optional_str,
    "timeout_seconds": float,
    "retries": int,
    "retry_backoff_seconds": float,
    "log_dir": _parse_str,
    "report_dir": _parse_str,
    "log_level": lambda v: str(v).strip().upper(),
}

_ENV_NAMES: dict[str, str] = {
    "host": "API_HOST",
    "port": "API_PORT",
    "api_username": "API_USERNAME",
    "api_password": "API_PASSWORD",
}


def envName(key: str) -> str:
    return ENV_PREFIX + _ENV_NAMES.get(key, key.upper())


def _read_yaml_config(path: Path) -> dict:
    if not path.exists() or not path.is_file():
        raise ConfigError(f"Config file not found: {path}", key="config")
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}", key="config") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping", key="config")
    return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _coerce(key: str, value: Any, source: str) -> Any:
    try:
        return _PARSERS[key](value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {key} from {source}: {value!r}", key=key) from exc


def _check(settings: Settings) -> None:
    if not 1 <= settings.max_import_size <= MAX_IMPORT_SIZE_LIMIT:
        raise ConfigError(
            f"max_import_size must be between 1 and {MAX_IMPORT_SIZE_LIMIT}, got {settings.max_import_size}",
            key="max_import_size",
        )
    if settings.directory_backend not in DIRECTORY_BACKENDS:
        raise ConfigError(
            f"directory_backend must be one of {', '.join(DIRECTORY_BACKENDS)}, got {settings.directory_backend!r}",
            key="directory_backend",
        )
    if settings.retries < 0:
        raise ConfigError("retries must be >= 0", key="retries")
    if settings.log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}", key="log_level")


def load_settings(config_path: str | None, cli_overrides: dict) -> LoadedSettings:
    """
    Назначение:
        Собирает итоговые настройки.

    Алгоритм:
        Priority: CLI > ENV > config > defaults
        - пустая default_role заменяется на 'authenticated';
        - неверные значения -> ConfigError.
    """
    sources: list[str] = []
    known = {f.name for f in fields(Settings)}
    merged: dict[str, Any] = {}

    # 1) config file
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")
        for key, value in cfg.items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {key}", key=key)
            if value is None:
                continue
            merged[key] = _coerce(key, value, "config")

    # 2) env
    env_used = False
    for key in known:
        raw = _env_get(envName(key))
        if raw is None:
            continue
        env_used = True
        merged[key] = _coerce(key, raw, envName(key))
    if env_used:
        sources.append("env")

    # 3) CLI overrides (only those explicitly passed)
    cli_used = False
    for key, value in cli_overrides.items():
        if value is None:
            continue
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}", key=key)
        cli_used = True
        merged[key] = _coerce(key, value, "cli")
    if cli_used:
        sources.append("cli")

    if not merged.get("default_role", DEFAULT_ROLE):
        merged["default_role"] = DEFAULT_ROLE

    settings = Settings(**merged)
    _check(settings)
    return LoadedSettings(settings=settings, sources_used=sources)


__all__ = ["Settings", "LoadedSettings", "load_settings", "parse_bool", "envName"]
