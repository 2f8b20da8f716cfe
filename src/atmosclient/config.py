"""Configuration loading and Pydantic models for the Atmos client."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class ConnectionConfig(BaseModel):
    """Where and how to reach the Atmos service."""

    hosts: list[str] = Field(default_factory=lambda: ["localhost"])
    port: int = 443
    protocol: str | None = None
    context: str = "/rest"
    connect_timeout: float | None = None
    read_timeout: float | None = None
    proxy: str | None = None
    verify_tls: bool = True

    @field_validator("hosts")
    @classmethod
    def _require_host(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one host is required")
        return value

    @model_validator(mode="after")
    def _default_protocol(self) -> "ConnectionConfig":
        # Port 443 implies TLS unless the protocol is given explicitly
        if self.protocol is None:
            self.protocol = "https" if self.port == 443 else "http"
        return self


class AuthConfig(BaseModel):
    """Credentials used to sign requests."""

    uid: str = ""
    secret: str = ""


class ProtocolConfig(BaseModel):
    """Wire-level behaviour of the client."""

    utf8_enabled: bool = True
    server_offset: int = 0
    custom_headers: dict[str, str] = Field(default_factory=dict)


class LoggingConfig(BaseModel):
    """Log output settings applied by ``configure_logging``."""

    level: str = "INFO"
    format: str = "text"


class ClientConfig(BaseModel):
    """Top-level Atmos client configuration."""

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _parse_connection(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the connection section from YAML data.

    Accepts either ``hosts: [a, b]`` or a single ``host: a``, and a nested
    ``timeouts: {connect: .., read: ..}`` block.
    """
    if data is None:
        return {}
    result: dict[str, Any] = {}
    if "hosts" in data:
        result["hosts"] = list(data["hosts"] or [])
    elif "host" in data:
        result["hosts"] = [data["host"]]
    for key in ("port", "protocol", "context", "proxy", "verify_tls"):
        if key in data:
            result[key] = data[key]
    timeouts = data.get("timeouts")
    if isinstance(timeouts, dict):
        result["connect_timeout"] = timeouts.get("connect")
        result["read_timeout"] = timeouts.get("read")
    return result


def _parse_auth(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the auth section from YAML data."""
    if data is None:
        return {}
    return {
        "uid": data.get("uid", ""),
        "secret": data.get("secret", ""),
    }


def _parse_protocol(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the protocol section from YAML data."""
    if data is None:
        return {}
    return {
        "utf8_enabled": data.get("utf8_enabled", True),
        "server_offset": data.get("server_offset", 0),
        "custom_headers": data.get("custom_headers") or {},
    }


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def load_config(path: Path) -> ClientConfig:
    """Load a ClientConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated ClientConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value has the wrong type.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return ClientConfig(
        connection=ConnectionConfig(**_parse_connection(raw.get("connection"))),
        auth=AuthConfig(**_parse_auth(raw.get("auth"))),
        protocol=ProtocolConfig(**_parse_protocol(raw.get("protocol"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
    )
