from pathlib import Path

from certguard.storage.base import BaseObjectStore
from certguard.storage.exceptions import ObjectExistsError, ObjectNotFoundError, StorageError


class LocalObjectStore(BaseObjectStore):
    """Stores objects as files below a root directory."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, root: Path | None = None) -> None:
        self._root = (root if root is not None else self.FILES_ROOT).resolve()

    def upload(self, key: str, data: bytes) -> str:
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("xb") as handle:
                handle.write(data)
        except FileExistsError as exc:
            raise ObjectExistsError(f"Object already exists: {key}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        return path.as_uri()

    def retrieve(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.is_file():
            raise ObjectNotFoundError(f"Object not found: {key}")
        return path.read_bytes()

    def delete(self, key: str) -> None:
        try:
            self._resolve_path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc

    def _resolve_path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root) or path == self._root:
            raise StorageError(f"Key escapes the storage root: {key}")
        return path
