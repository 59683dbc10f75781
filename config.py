"""Configuration constants and runtime settings for the static file server."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

HOST: str = "127.0.0.1"
PORT: int = 3000
SERVER_NAME: str = "static-server"
DEFAULT_DOCUMENT: str = "index.html"
DEFAULT_EXTENSION: str = ".html"
READ_CHUNK_SIZE: int = 65_536
SOCKET_TIMEOUT_SECS: int = 5
FILE_READ_TIMEOUT_SECS: float = 10.0
MAX_REQUEST_BYTES: int = 1_048_576
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 524_288
MAX_TARGET_LENGTH: int = 8_192
MAX_KEEPALIVE_REQUESTS: int = 100
WORKER_COUNT: int = 16
REQUEST_QUEUE_SIZE: int = 128
LOG_FORMAT: str = "plain"

PORT_ENV_VAR: str = "PORT"
CONTENT_ROOT_ENV_VAR: str = "CONTENT_ROOT"
HOST_ENV_VAR: str = "HOST"


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = HOST
    port: int = PORT
    content_root: Path = field(default_factory=Path.cwd)
    mime_overrides: Mapping[str, str] = field(default_factory=dict)
    worker_count: int = WORKER_COUNT
    request_queue_size: int = REQUEST_QUEUE_SIZE
    socket_timeout_secs: float = SOCKET_TIMEOUT_SECS
    file_read_timeout_secs: float = FILE_READ_TIMEOUT_SECS
    log_format: str = LOG_FORMAT

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.worker_count <= 0 or self.request_queue_size <= 0:
            raise ValueError("worker_count and request_queue_size must be positive")
        if self.log_format not in {"plain", "json"}:
            raise ValueError(f"Unsupported log format: {self.log_format}")
        object.__setattr__(self, "content_root", Path(self.content_root).expanduser().absolute())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> "ServerConfig":
        """Build a config from PORT / CONTENT_ROOT / HOST, then apply overrides."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        raw_port = env.get(PORT_ENV_VAR, "").strip()
        if raw_port:
            values["port"] = parse_port(raw_port)

        raw_root = env.get(CONTENT_ROOT_ENV_VAR, "").strip()
        if raw_root:
            values["content_root"] = Path(raw_root)

        raw_host = env.get(HOST_ENV_VAR, "").strip()
        if raw_host:
            values["host"] = raw_host

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]


def parse_port(raw_value: str) -> int:
    try:
        port = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Invalid port: {raw_value!r}") from exc
    if not 0 <= port <= 65535:
        raise ValueError(f"Invalid port: {raw_value!r}")
    return port
