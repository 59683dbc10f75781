"""Static extension to content-type lookup."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import PurePath
from types import MappingProxyType

DEFAULT_CONTENT_TYPE = "application/octet-stream"

DEFAULT_MIME_TYPES: Mapping[str, str] = MappingProxyType(
    {
        ".html": "text/html",
        ".htm": "text/html",
        ".css": "text/css",
        ".js": "text/javascript",
        ".mjs": "text/javascript",
        ".json": "application/json",
        ".map": "application/json",
        ".txt": "text/plain",
        ".xml": "application/xml",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".gif": "image/gif",
        ".svg": "image/svg+xml",
        ".ico": "image/x-icon",
        ".webp": "image/webp",
        ".woff": "font/woff",
        ".woff2": "font/woff2",
        ".pdf": "application/pdf",
        ".wasm": "application/wasm",
    }
)


class MimeTable:
    """Immutable mapping from lower-cased file extension to content type."""

    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        *,
        default: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        if not default:
            raise ValueError("default content type cannot be empty")

        table = dict(DEFAULT_MIME_TYPES)
        for extension, content_type in (overrides or {}).items():
            normalized = extension.lower()
            if not normalized.startswith("."):
                normalized = f".{normalized}"
            if not content_type:
                raise ValueError(f"content type for {normalized} cannot be empty")
            table[normalized] = content_type

        self._types: Mapping[str, str] = MappingProxyType(table)
        self._default = default

    @property
    def default(self) -> str:
        return self._default

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and extension.lower() in self._types

    def __len__(self) -> int:
        return len(self._types)

    def content_type_for(self, path: PurePath | str) -> str:
        extension = PurePath(path).suffix.lower()
        return self._types.get(extension, self._default)
