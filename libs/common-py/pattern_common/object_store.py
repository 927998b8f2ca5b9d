"""
Bulk object store access.

Stores expose two read operations: ``get(path)`` returning the object's
bytes and ``list(prefix, page_token, max_results)`` returning one page of
objects plus the token for the next page (``None`` once exhausted).
"""
import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from .error_codes import TransientStoreError
from .logging_config import configure_logging
from .models import StoredObject

logger = configure_logging("common-py:object_store")


class ObjectStore(ABC):
    """Read-only view of a bucket."""

    @abstractmethod
    async def get(self, path: str) -> bytes:
        ...

    @abstractmethod
    async def list(
        self,
        prefix: str,
        page_token: Optional[str] = None,
        max_results: int = 500,
    ) -> Tuple[List[StoredObject], Optional[str]]:
        ...


class LocalObjectStore(ObjectStore):
    """Object store backed by a directory tree under ``root``.

    Object names are POSIX paths relative to the root. Listing is ordered by
    name and the page token is the last name of the previous page, so a page
    is stable while objects are being added behind it.
    """

    def __init__(self, root: str, bucket_id: Optional[str] = None):
        self.root = Path(root).resolve()
        self.bucket_id = bucket_id or self.root.name

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents and target != self.root:
            raise TransientStoreError("Object path escapes store root", {"path": path})
        return target

    async def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            raise TransientStoreError(f"Failed to read object: {e}", {"path": path}) from e

    async def list(
        self,
        prefix: str,
        page_token: Optional[str] = None,
        max_results: int = 500,
    ) -> Tuple[List[StoredObject], Optional[str]]:
        try:
            return await asyncio.to_thread(self._list_page, prefix, page_token, max_results)
        except OSError as e:
            raise TransientStoreError(
                f"Failed to list objects: {e}",
                {"prefix": prefix, "page_token": page_token},
            ) from e

    def _list_page(
        self,
        prefix: str,
        page_token: Optional[str],
        max_results: int,
    ) -> Tuple[List[StoredObject], Optional[str]]:
        # Only walk the deepest directory the prefix pins down
        head = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        base_dir = self._resolve(head) if head else self.root
        if not base_dir.is_dir():
            return [], None

        names = []
        for p in base_dir.rglob("*"):
            name = p.relative_to(self.root).as_posix()
            if p.is_dir():
                # Empty directories surface as folder markers, like bucket placeholders
                if any(p.iterdir()):
                    continue
                name += "/"
            if not name.startswith(prefix):
                continue
            if page_token is not None and name <= page_token:
                continue
            names.append(name)
        names.sort()

        page = names[:max_results]
        next_token = page[-1] if len(names) > max_results else None

        items = []
        for name in page:
            size = 0 if name.endswith("/") else (self.root / name).stat().st_size
            items.append(StoredObject(path=name, size_bytes=size))
        return items, next_token
