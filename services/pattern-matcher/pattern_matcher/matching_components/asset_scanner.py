from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from pattern_common.error_codes import ScanPageError, TransientStoreError
from pattern_common.logging_config import configure_logging
from pattern_common.models import StoredObject
from pattern_common.object_store import ObjectStore

from .asset_paths import IMAGE_EXTENSIONS

logger = configure_logging("pattern-matcher:asset_scanner")

DEFAULT_PAGE_SIZE = 500


@dataclass
class ScanResult:
    items: List[StoredObject] = field(default_factory=list)
    truncated: bool = False
    pages: int = 0


class AssetStoreScanner:
    """Paginated, capped enumeration of objects under a prefix."""

    def __init__(self, store: ObjectStore, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.store = store
        self.page_size = page_size

    async def list_assets_under_prefix(self, prefix: str, max_to_scan: int) -> ScanResult:
        """Collect at most ``max_to_scan`` objects under ``prefix``.

        ``truncated`` is True when the prefix holds more objects than the
        cap. A failed page raises ``ScanPageError`` whose ``partial`` is the
        result gathered before the failure.
        """
        result = ScanResult()
        page_token: Optional[str] = None

        while len(result.items) < max_to_scan:
            remaining = max_to_scan - len(result.items)
            try:
                page, page_token = await self.store.list(prefix, page_token, min(self.page_size, remaining))
            except TransientStoreError as e:
                result.truncated = True
                logger.warning(
                    "scan:page:fail",
                    prefix=prefix,
                    pages=result.pages,
                    collected=len(result.items),
                    error=str(e),
                )
                raise ScanPageError(f"listing {prefix!r} failed after {result.pages} pages", result) from e

            result.pages += 1
            if len(page) > remaining:
                result.items.extend(page[:remaining])
                result.truncated = True
                return result
            result.items.extend(page)
            if not page_token:
                return result

        result.truncated = await self._has_more(prefix, page_token)
        return result

    async def _has_more(self, prefix: str, page_token: Optional[str]) -> bool:
        try:
            page, _ = await self.store.list(prefix, page_token, 1)
        except TransientStoreError as e:
            logger.warning("scan:peek:fail", prefix=prefix, error=str(e))
            return True
        return bool(page)


def filter_by_brand_and_extension(
    items: Iterable[StoredObject],
    brand: str,
    exts: Sequence[str] = IMAGE_EXTENSIONS,
    brand_segment: Optional[int] = None,
) -> List[StoredObject]:
    """Drop folder markers and non-images; with ``brand_segment`` also require
    that path segment to equal ``brand`` (case-insensitive)."""
    brand = brand.lower()
    exts_lc = tuple(e.lower() for e in exts)
    kept = []
    for item in items:
        name = item.path
        if not name or name.endswith("/"):
            continue
        if not name.lower().endswith(exts_lc):
            continue
        if brand_segment is not None:
            segs = name.split("/")
            if len(segs) <= brand_segment or segs[brand_segment].lower() != brand:
                continue
        kept.append(item)
    return kept
