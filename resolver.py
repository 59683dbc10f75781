"""Map request paths onto files beneath a fixed content root."""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import unquote

from config import DEFAULT_DOCUMENT, DEFAULT_EXTENSION


class PathResolver:
    def __init__(
        self,
        content_root: Path | str,
        default_document: str = DEFAULT_DOCUMENT,
        default_extension: str = DEFAULT_EXTENSION,
    ) -> None:
        if not default_document or "/" in default_document:
            raise ValueError("default_document must be a bare file name")
        if not default_extension.startswith("."):
            raise ValueError("default_extension must start with '.'")
        self.content_root = Path(content_root).resolve()
        self.default_document = default_document
        self.default_extension = default_extension

    def resolve(self, url_path: str) -> Path | None:
        """Return the file path for ``url_path``, or None if it leaves the root.

        Symlinks are followed only to check containment; the returned path is
        the requested one and is not checked for existence.
        """
        if not url_path.startswith("/"):
            return None

        decoded_path = unquote(url_path)
        if "\x00" in decoded_path:
            return None

        if decoded_path == "/":
            decoded_path = f"/{self.default_document}"

        relative_path = decoded_path.lstrip("/")
        candidate = os.path.normpath(os.path.join(self.content_root, relative_path))
        # A trailing slash stays literal, so "/about/" becomes "about/.html".
        if relative_path.endswith("/"):
            candidate += os.sep
        if not os.path.splitext(candidate)[1]:
            candidate += self.default_extension

        candidate_path = Path(candidate)
        try:
            real_path = candidate_path.resolve()
        except (OSError, RuntimeError):
            return None

        # Both the requested path and its symlink target must stay inside.
        for path in (candidate_path, real_path):
            try:
                path.relative_to(self.content_root)
            except ValueError:
                return None

        return candidate_path
