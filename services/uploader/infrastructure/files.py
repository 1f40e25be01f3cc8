from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote, urlparse

from services.uploader.domain.recording import FileInfo


def local_path(file_ref: str) -> Path:
    """Resolve a plain path or a ``file://`` URI to a filesystem path."""
    if file_ref.startswith("file://"):
        return Path(unquote(urlparse(file_ref).path))
    return Path(file_ref)


class LocalFileInspector:
    def inspect(self, file_ref: str) -> FileInfo:
        path = local_path(file_ref)
        try:
            stat = path.stat()
        except OSError:
            return FileInfo(exists=False)
        if not path.is_file():
            return FileInfo(exists=False)
        return FileInfo(exists=True, size_bytes=stat.st_size)
