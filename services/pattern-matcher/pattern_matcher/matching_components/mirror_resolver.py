from typing import Dict, Iterable

from pattern_common.crud import ListingMirrorCRUD
from pattern_common.logging_config import configure_logging
from pattern_common.models import ListingMirror

logger = configure_logging("pattern-matcher:mirror_resolver")

DEFAULT_CHUNK_SIZE = 100


class MirrorResolver:
    """Chunked multi-get of listing seller/ref metadata."""

    def __init__(self, mirror_crud: ListingMirrorCRUD, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if not 1 <= chunk_size <= mirror_crud.max_batch_get:
            raise ValueError(
                f"chunk_size must be within [1, {mirror_crud.max_batch_get}], got {chunk_size}"
            )
        self.mirror_crud = mirror_crud
        self.chunk_size = chunk_size

    async def resolve_listing_mirrors(self, listing_ids: Iterable[str]) -> Dict[str, ListingMirror]:
        """Map every requested id to its mirror.

        Ids that are unknown, or whose chunk failed to load, map to an empty
        ``ListingMirror`` so matches can still be recorded without enrichment.
        """
        ids = sorted(set(listing_ids))
        results: Dict[str, ListingMirror] = {}
        if not ids:
            return results

        chunks = [ids[i:i + self.chunk_size] for i in range(0, len(ids), self.chunk_size)]
        logger.info("mirror:batch:start", total=len(ids), chunks=len(chunks))

        failed_chunks = 0
        for chunk in chunks:
            try:
                found = await self.mirror_crud.get_many(chunk)
            # Enrichment is optional; a failed chunk degrades to empty mirrors
            except Exception as e:  # noqa: BLE001
                failed_chunks += 1
                logger.warning("mirror:batch:fail", chunk_size=len(chunk), error=str(e))
                found = {}
            for listing_id in chunk:
                results[listing_id] = found.get(listing_id) or ListingMirror()

        resolved = sum(1 for m in results.values() if m.seller_uid or m.canonical_ref_path)
        logger.info("mirror:batch:done", total=len(results), resolved=resolved, failed_chunks=failed_chunks)
        return results
