"""File storage access.

Only the operations the hook pipeline needs are exposed; uploads and
thumbnail generation live with the storage adapters themselves.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from tableforge.errors import TableForgeError


@runtime_checkable
class StorageAdapter(Protocol):
    def exists(self, path: str) -> bool: ...


class LocalAdapter:
    """Files on the local disk under ``root``."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def exists(self, path: str) -> bool:
        target = (self.root / path.lstrip("/")).resolve()
        # Paths escaping the root never exist
        if not target.is_relative_to(self.root.resolve()):
            return False
        return target.exists()


class Filesystem:
    def __init__(self, adapter: StorageAdapter):
        self.adapter = adapter

    def exists(self, path: str) -> bool:
        return self.adapter.exists(path)


def create_adapter(settings: dict[str, Any]) -> StorageAdapter:
    """Create a storage adapter from the ``filesystem`` config block.

    Raises:
        TableForgeError: For unknown adapter names
    """
    name = settings.get("adapter", "local")
    if name == "local":
        return LocalAdapter(settings.get("root", "."))
    raise TableForgeError(f"Unsupported filesystem adapter: {name}")


__all__ = ["Filesystem", "LocalAdapter", "StorageAdapter", "create_adapter"]
