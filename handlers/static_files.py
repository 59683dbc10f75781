"""Serve files from the content root."""

from __future__ import annotations

import logging
import os
import stat
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path

from config import FILE_READ_TIMEOUT_SECS, WORKER_COUNT
from mime import MimeTable
from request import HTTPRequest
from resolver import PathResolver
from response import HTTPResponse, as_head_response, error_response

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")
NOT_FOUND_MESSAGE = "404 : File Not Found"


class NotRegularFileError(OSError):
    """Raised when the resolved path exists but is not a regular file."""


class FileReadTimeoutError(OSError):
    """Raised when reading a file takes longer than the configured timeout."""


def read_regular_file(file_path: Path) -> bytes:
    # O_NONBLOCK keeps open() on a FIFO from hanging; regular files ignore it.
    flags = os.O_RDONLY | getattr(os, "O_NONBLOCK", 0)
    fd = os.open(file_path, flags)
    try:
        if not stat.S_ISREG(os.fstat(fd).st_mode):
            raise NotRegularFileError(f"{file_path} is not a regular file")
    except OSError:
        os.close(fd)
        raise
    with os.fdopen(fd, "rb") as file_obj:
        return file_obj.read()


class _ReadPool:
    """File read executor and the number of its reads stuck past the timeout."""

    def __init__(self, workers: int) -> None:
        if workers <= 0:
            raise ValueError("read_workers must be positive")
        self.workers = workers
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="static-read")
        self.stuck_reads = 0


class StaticFileHandler:
    """Turn a request into exactly one 200, 404, 405 or 500 response."""

    def __init__(
        self,
        resolver: PathResolver,
        mime_table: MimeTable | None = None,
        *,
        read_timeout_secs: float = FILE_READ_TIMEOUT_SECS,
        read_workers: int = WORKER_COUNT,
    ) -> None:
        if read_timeout_secs <= 0:
            raise ValueError("read_timeout_secs must be positive")
        self.resolver = resolver
        self.mime_table = mime_table or MimeTable()
        self.read_timeout_secs = read_timeout_secs
        self.read_workers = read_workers
        self._read_lock = threading.Lock()
        self._read_pool = _ReadPool(read_workers)

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in ALLOWED_METHODS:
            response = error_response(405)
            response.headers["Allow"] = ", ".join(ALLOWED_METHODS)
            return response

        response = self.serve(request.path)
        if request.method == "HEAD":
            return as_head_response(response)
        return response

    def serve(self, url_path: str) -> HTTPResponse:
        file_path = self.resolver.resolve(url_path)
        if file_path is None:
            logger.warning("Rejected path outside content root: %r", url_path)
            return error_response(404, NOT_FOUND_MESSAGE)

        try:
            body = self._read(file_path)
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError, NotRegularFileError):
            return error_response(404, NOT_FOUND_MESSAGE)
        except FileReadTimeoutError:
            logger.error("Timed out after %.1fs reading %s", self.read_timeout_secs, file_path)
            return error_response(500)
        except OSError as exc:
            logger.error("Failed to read %s: %s", file_path, exc)
            return error_response(500)

        return HTTPResponse(
            status_code=200,
            headers={"Content-Type": self.mime_table.content_type_for(file_path)},
            body=body,
        )

    def close(self) -> None:
        with self._read_lock:
            self._read_pool.executor.shutdown(wait=False, cancel_futures=True)

    def _read(self, file_path: Path) -> bytes:
        with self._read_lock:
            pool = self._read_pool
            future: Future[bytes] = pool.executor.submit(read_regular_file, file_path)
        try:
            return future.result(timeout=self.read_timeout_secs)
        except FuturesTimeoutError as exc:
            if not future.cancel():
                self._track_stuck_read(pool, future)
            raise FileReadTimeoutError(f"Timed out reading {file_path}") from exc

    def _track_stuck_read(self, pool: _ReadPool, future: Future[bytes]) -> None:
        with self._read_lock:
            pool.stuck_reads += 1
            if pool is self._read_pool and pool.stuck_reads >= pool.workers:
                logger.warning(
                    "All %d file read workers are stuck; replacing the read pool",
                    pool.workers,
                )
                pool.executor.shutdown(wait=False)
                self._read_pool = _ReadPool(self.read_workers)
        future.add_done_callback(lambda _done: self._release_stuck_read(pool))

    def _release_stuck_read(self, pool: _ReadPool) -> None:
        with self._read_lock:
            pool.stuck_reads -= 1
