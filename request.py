"""Request-line and header parsing."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from config import MAX_TARGET_LENGTH

SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")
KNOWN_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "TRACE", "CONNECT"}
)


class HTTPRequestParseError(ValueError):
    """Request parse error carrying an HTTP status code."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def split_target(target: str) -> str:
    """Return the path of an origin-form target without query or fragment.

    The target is never read as a URL, so ``//a/b`` keeps both segments.
    """
    path = target.partition("#")[0].partition("?")[0]
    return path or "/"


def parse_header_block(lines: Iterable[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in lines:
        if not line:
            continue
        name, separator, value = line.partition(":")
        name = name.strip().lower()
        if not separator or not name:
            raise HTTPRequestParseError("Malformed header line")
        headers[name] = value.strip()
    return headers


def _parse_request_line(line: str) -> tuple[str, str, str]:
    parts = line.split(" ")
    if len(parts) != 3 or not all(parts):
        raise HTTPRequestParseError("Invalid request line")

    method, target, version = parts
    method = method.upper()
    if method not in KNOWN_METHODS:
        raise HTTPRequestParseError("Method not implemented", status_code=501)
    if version not in SUPPORTED_VERSIONS:
        raise HTTPRequestParseError("Unsupported HTTP version", status_code=505)
    if len(target) > MAX_TARGET_LENGTH:
        raise HTTPRequestParseError("Request target too long", status_code=414)
    if not target.startswith("/"):
        raise HTTPRequestParseError("Request target must be in origin-form")
    return method, target, version


@dataclass(slots=True)
class HTTPRequest:
    method: str
    path: str
    http_version: str = "HTTP/1.1"
    raw_target: str = "/"
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def keep_alive(self) -> bool:
        connection = self.headers.get("connection", "").lower()
        if self.http_version == "HTTP/1.0":
            return "keep-alive" in connection
        return "close" not in connection

    @classmethod
    def from_bytes(cls, head: bytes) -> "HTTPRequest":
        """Parse a request head. Bytes after the blank line are ignored."""
        text = head.split(b"\r\n\r\n", 1)[0].decode("iso-8859-1")
        request_line, *header_lines = text.split("\r\n")
        if not request_line:
            raise HTTPRequestParseError("Missing request line")

        method, target, version = _parse_request_line(request_line)
        headers = parse_header_block(header_lines)

        if version == "HTTP/1.1" and "host" not in headers:
            raise HTTPRequestParseError("Host header required for HTTP/1.1")
        # Bodies are framed by Content-Length only.
        if "transfer-encoding" in headers:
            raise HTTPRequestParseError("Transfer-Encoding is not supported", status_code=501)

        return cls(
            method=method,
            path=split_target(target),
            http_version=version,
            raw_target=target,
            headers=headers,
        )
