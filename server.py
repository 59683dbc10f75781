"""Static file server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import socket
import sys
import time
from collections.abc import Callable, Mapping
from pathlib import Path

from config import (
    LOG_FORMAT,
    MAX_KEEPALIVE_REQUESTS,
    REQUEST_QUEUE_SIZE,
    WORKER_COUNT,
    ServerConfig,
    parse_port,
)
from handlers.static_files import StaticFileHandler
from mime import MimeTable
from request import HTTPRequest, HTTPRequestParseError
from resolver import PathResolver
from response import HTTPResponse, error_response
from socket_handler import (
    READ_ERROR_STATUS,
    HTTPReadError,
    read_request_head,
    write_response,
)
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)

RequestHandler = Callable[[HTTPRequest], HTTPResponse]

LISTEN_BACKLOG = 128
ACCEPT_TIMEOUT_SECS = 0.2
DRAIN_TIMEOUT_SECS = 2.0


class StartupError(RuntimeError):
    """Raised when the server cannot start serving its content root."""


def check_content_root(content_root: Path) -> Path:
    root = Path(content_root)
    if not root.exists():
        raise StartupError(f"Content root does not exist: {root}")
    if not root.is_dir():
        raise StartupError(f"Content root is not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise StartupError(f"Content root is not readable: {root}")
    return root.resolve()


class StaticFileServer:
    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        handler: RequestHandler | None = None,
    ) -> None:
        self.config = config or ServerConfig()
        self.content_root = check_content_root(self.config.content_root)
        self.host = self.config.host
        self.port = self.config.port
        self.handler = handler or StaticFileHandler(
            PathResolver(self.content_root),
            MimeTable(self.config.mime_overrides),
            read_timeout_secs=self.config.file_read_timeout_secs,
            read_workers=self.config.worker_count,
        )

        self._server_socket: socket.socket | None = None
        self._pool: ThreadPool | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Bind the listening socket and serve until stop() is called."""
        self.bind()
        self.serve_forever()

    def bind(self) -> None:
        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(LISTEN_BACKLOG)
        except OSError as exc:
            server_socket.close()
            raise StartupError(
                f"Cannot listen on {self.host}:{self.port}: {exc.strerror or exc}"
            ) from exc

        server_socket.settimeout(ACCEPT_TIMEOUT_SECS)
        self.port = server_socket.getsockname()[1]
        self._server_socket = server_socket
        logger.info(
            "Serving %s on http://%s:%s/",
            self.content_root,
            self.host,
            self.port,
        )

    def serve_forever(self) -> None:
        server_socket = self._server_socket
        if server_socket is None:
            raise RuntimeError("bind() must be called before serve_forever()")

        self._pool = ThreadPool(
            worker_count=self.config.worker_count,
            queue_size=self.config.request_queue_size,
            handler=self._handle_client,
        )
        self._pool.start()
        self._running = True
        try:
            while self._running:
                try:
                    client_socket, address = server_socket.accept()
                except socket.timeout:
                    continue
                except OSError:
                    break

                if not self._pool.submit(client_socket, address):
                    self._send_queue_full_response(client_socket, address)
        finally:
            self._running = False
            self._pool.shutdown(drain_timeout=DRAIN_TIMEOUT_SECS)
            self._pool = None
            server_socket.close()
            self._server_socket = None
            close_handler = getattr(self.handler, "close", None)
            if close_handler is not None:
                close_handler()
            logger.info("Server on port %s stopped", self.port)

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()

    def _send_queue_full_response(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
    ) -> None:
        with client_socket:
            client_socket.settimeout(self.config.socket_timeout_secs)
            response = error_response(503)
            response.headers["Connection"] = "close"
            self._send(client_socket, address, "-", "-", response, time.perf_counter())

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(self.config.socket_timeout_secs)
            carry = b""
            for request_index in range(MAX_KEEPALIVE_REQUESTS):
                started_at = time.perf_counter()
                try:
                    request_head, carry = read_request_head(client_socket, carry)
                except HTTPReadError as exc:
                    response = error_response(READ_ERROR_STATUS.get(type(exc), 400))
                    response.headers["Connection"] = "close"
                    self._send(client_socket, address, "-", "-", response, started_at)
                    return
                except OSError:
                    return

                if not request_head:
                    return

                try:
                    request = HTTPRequest.from_bytes(request_head)
                except HTTPRequestParseError as exc:
                    logger.debug("Rejected request from %s: %s", address[0], exc)
                    response = error_response(exc.status_code)
                    response.headers["Connection"] = "close"
                    self._send(client_socket, address, "-", "-", response, started_at)
                    return

                keep_alive = (
                    request.keep_alive
                    and self._running
                    and request_index + 1 < MAX_KEEPALIVE_REQUESTS
                )
                response = self._dispatch(request)
                response.headers["Connection"] = "keep-alive" if keep_alive else "close"
                sent = self._send(
                    client_socket,
                    address,
                    request.method,
                    request.path,
                    response,
                    started_at,
                )
                if not sent or not keep_alive:
                    return

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        try:
            return self.handler(request)
        except Exception:
            logger.exception("Unhandled error while serving %s %s", request.method, request.path)
            return error_response(500)

    def _send(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        started_at: float,
    ) -> bool:
        try:
            bytes_sent = write_response(client_socket, response)
        except OSError as exc:
            logger.debug("Client %s went away before the response was sent: %s", address[0], exc)
            return False

        self._record_and_log(
            address=address,
            method=method,
            path=path,
            status_code=response.status_code,
            bytes_out=bytes_sent,
            started_at=started_at,
        )
        return True

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        status_code: int,
        bytes_out: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        if self.config.log_format == "json":
            event = {
                "client": address[0],
                "method": method,
                "path": path,
                "status": status_code,
                "bytes_out": bytes_out,
                "duration_ms": round(duration_ms, 3),
            }
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_out=%s duration_ms=%.2f",
            address[0],
            method,
            path,
            status_code,
            bytes_out,
            duration_ms,
        )


def _port_arg(raw_value: str) -> int:
    try:
        return parse_port(raw_value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve static files from a content root")
    parser.add_argument("--host", default=None, help="bind address (env HOST)")
    parser.add_argument("--port", type=_port_arg, default=None, help="TCP port (env PORT)")
    parser.add_argument("--root", type=Path, default=None, help="content root (env CONTENT_ROOT)")
    parser.add_argument("--workers", type=int, default=WORKER_COUNT)
    parser.add_argument("--queue-size", type=int, default=REQUEST_QUEUE_SIZE)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    return parser.parse_args(argv)


def build_config(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> ServerConfig:
    """Merge CLI arguments over PORT / CONTENT_ROOT / HOST and defaults."""
    return ServerConfig.from_env(
        environ,
        host=args.host,
        port=args.port,
        content_root=args.root,
        worker_count=args.workers,
        request_queue_size=args.queue_size,
        log_format=args.log_format,
    )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        stream=sys.stdout,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        server = StaticFileServer(build_config(args))
        server.bind()
    except (StartupError, ValueError) as exc:
        print(f"static-server: {exc}", file=sys.stderr)
        return 1

    signal.signal(signal.SIGTERM, lambda _signum, _frame: server.stop())
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
