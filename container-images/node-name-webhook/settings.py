import logging
import re
import socket
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, field_validator

ENV_PREFIX = "NODE_NAME_WEBHOOK"

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class Settings(BaseModel):
    """Process configuration, built once at startup and never modified."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    log_level: Literal["error", "warn", "info", "debug"] = "info"
    listen_address: str = ":8443"
    # Hostname to use in logs, if it needs to be different from the OS one.
    hostname: str = ""
    # Limits the part of the node name used in the pod name. Unset means
    # the whole node name.
    node_regex: re.Pattern | None = None
    tls_cert: str = "/certs/tls.crt"
    tls_key: str = "/certs/tls.key"
    shutdown_grace_seconds: float = 10
    # Report rejections as `allowed: false` reviews instead of HTTP errors.
    deny_in_response: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, val):
        return val.lower() if isinstance(val, str) else val

    @field_validator("listen_address")
    @classmethod
    def validate_listen_address(cls, val):
        host, sep, port = val.rpartition(":")
        if not sep or not port.isdigit() or int(port) > 65535:
            raise ValueError(f"listen address must be host:port, got {val!r}")
        return val

    @field_validator("hostname")
    @classmethod
    def validate_hostname(cls, val):
        return val or socket.gethostname()

    @field_validator("node_regex", mode="before")
    @classmethod
    def validate_node_regex(cls, val):
        return val or None

    @field_validator("shutdown_grace_seconds")
    @classmethod
    def validate_shutdown_grace(cls, val):
        if val < 0:
            raise ValueError("shutdown grace period can't be negative")
        return val

    @property
    def level(self) -> int:
        return LOG_LEVELS[self.log_level]

    @property
    def host(self) -> str:
        host = self.listen_address.rpartition(":")[0].strip("[]")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.listen_address.rpartition(":")[2])

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Settings":
        """Build settings from a Flask config, where keys are upper case."""
        values = {
            name: config[name.upper()]
            for name in cls.model_fields
            if name.upper() in config
        }
        return cls(**values)
