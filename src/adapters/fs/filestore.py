import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FileSystemStore:
    """Screenshots and cached heatmaps under a base directory."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _safe_path(self, path: str) -> Path:
        target = (self.base_path / path).resolve()
        if not target.is_relative_to(self.base_path):
            raise ValueError(f"Path traversal attempt detected: {path}")
        return target

    def save(self, name: str, data: bytes) -> str:
        target = self._safe_path(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored %d bytes at %s", len(data), name)
        # Paths are relative to base, as that's what callers store
        return target.relative_to(self.base_path).as_posix()

    def get(self, path: str) -> bytes:
        target = self._safe_path(path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        return self._safe_path(path).is_file()

    def delete(self, path: str) -> None:
        target = self._safe_path(path)
        if target.exists():
            target.unlink()


class InMemoryFileStore:
    """Dict-backed store for tests and development."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def save(self, name: str, data: bytes) -> str:
        self.files[name] = data
        return name

    def get(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(f"File not found: {path}")
        return self.files[path]

    def exists(self, path: str) -> bool:
        return path in self.files

    def delete(self, path: str) -> None:
        self.files.pop(path, None)
