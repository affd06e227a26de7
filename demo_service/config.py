"""Runtime configuration for the demo service."""
from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# 0 asks the OS for any free port.
Port = Annotated[int, Field(ge=0, le=65535)]

_PORT_ADAPTER: TypeAdapter[int] = TypeAdapter(Port)


class ServiceConfig(BaseSettings):
    """Settings the service reads from ``HOST``, ``PORT``, ``APP_ENV`` and ``LOG_LEVEL``.

    Orchestration variables such as ``REGISTRY``, ``IMAGE`` or ``TAG`` belong
    to the Makefile and compose file and are never read here.
    """

    model_config = SettingsConfigDict(env_ignore_empty=True, extra="ignore", frozen=True)

    host: str = "0.0.0.0"
    port: Port = 8080
    app_env: str = "development"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        return _coerce_log_level(value)

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Load settings from the process environment, raising :class:`ConfigError`."""
        try:
            return cls()
        except ValidationError as exc:
            raise ConfigError(_describe(exc)) from exc


def configure_logging(level: str = "INFO") -> None:
    """Route all service loggers to stderr with a single handler."""
    logging.basicConfig(level=_coerce_log_level(level), format=LOG_FORMAT)


def coerce_port(value: Any) -> int:
    try:
        return _PORT_ADAPTER.validate_python(value)
    except ValidationError as exc:
        raise ConfigError(f"PORT {value!r}: {_describe(exc)}") from exc


def _coerce_log_level(value: Any) -> str:
    name = str(value).strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {value!r}")
    return name


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}"
        for error in exc.errors()
    )


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


__all__ = [
    "ConfigError",
    "ServiceConfig",
    "coerce_port",
    "configure_logging",
]
