from typing import Protocol


class FileStorePort(Protocol):
    """Blob storage for reference screenshots and rendered heatmaps."""

    def save(self, name: str, data: bytes) -> str:
        """Save bytes and return the path to retrieve them by."""
        ...

    def get(self, path: str) -> bytes:
        """Retrieve bytes by path. Raises FileNotFoundError."""
        ...

    def exists(self, path: str) -> bool: ...

    def delete(self, path: str) -> None: ...
