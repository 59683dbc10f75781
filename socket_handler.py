"""Framing of requests on a client socket, and response writes."""

from __future__ import annotations

import socket
from dataclasses import dataclass

from config import MAX_BODY_BYTES, MAX_HEADER_BYTES, MAX_REQUEST_BYTES, READ_CHUNK_SIZE
from request import HTTPRequestParseError, parse_header_block
from response import HTTPResponse, serialize_head

HEAD_TERMINATOR = b"\r\n\r\n"


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""


class PayloadTooLargeError(HTTPReadError):
    """Raised when request body exceeds configured maximum size."""


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out while sending request bytes."""


READ_ERROR_STATUS: dict[type[HTTPReadError], int] = {
    PayloadTooLargeError: 413,
    HeaderTooLargeError: 431,
    SocketTimeoutError: 408,
    MalformedRequestError: 400,
}


@dataclass(slots=True)
class RequestFrame:
    """One request on the wire: its head plus a body that is skipped."""

    head: bytes
    body_length: int

    @property
    def size(self) -> int:
        return len(self.head) + len(HEAD_TERMINATOR) + self.body_length


def _declared_body_length(head: bytes) -> int:
    _request_line, *header_lines = head.decode("iso-8859-1").split("\r\n")
    try:
        headers = parse_header_block(header_lines)
    except HTTPRequestParseError as exc:
        raise MalformedRequestError(str(exc)) from exc

    raw_length = headers.get("content-length")
    if raw_length is None:
        return 0
    if not raw_length.isdigit():
        raise MalformedRequestError("Invalid Content-Length header")
    body_length = int(raw_length)
    if body_length > MAX_BODY_BYTES:
        raise PayloadTooLargeError("Body exceeded MAX_BODY_BYTES")
    return body_length


def next_request_frame(buffer: bytes) -> RequestFrame | None:
    """Frame the first request in ``buffer``, or None when more bytes are needed."""
    if len(buffer) > MAX_REQUEST_BYTES:
        raise PayloadTooLargeError("Request exceeded MAX_REQUEST_BYTES")

    head_end = buffer.find(HEAD_TERMINATOR)
    if head_end == -1:
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
        return None
    if head_end + len(HEAD_TERMINATOR) > MAX_HEADER_BYTES:
        raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")

    head = buffer[:head_end]
    frame = RequestFrame(head=head, body_length=_declared_body_length(head))
    if len(buffer) < frame.size:
        return None
    return frame


def read_request_head(client_socket: socket.socket, carry: bytes = b"") -> tuple[bytes, bytes]:
    """Return the next request head and whatever follows its body.

    The body itself is read and dropped. ``(b"", b"")`` means the peer closed
    or went idle between requests.
    """
    buffer = bytearray(carry)

    while True:
        frame = next_request_frame(bytes(buffer))
        if frame is not None:
            return frame.head, bytes(buffer[frame.size :])

        try:
            chunk = client_socket.recv(READ_CHUNK_SIZE)
        except socket.timeout as exc:
            if not buffer:
                return b"", b""
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc

        if not chunk:
            if not buffer:
                return b"", b""
            raise MalformedRequestError("Connection closed before request completed")

        buffer.extend(chunk)


def write_response(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Send head and body of ``response`` with one sendall and return the byte count."""
    payload = serialize_head(response) + response.body  # type: ignore[operator]
    client_socket.sendall(payload)
    return len(payload)
