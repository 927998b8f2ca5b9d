from typing import Dict, Iterable
from ..database import DatabaseManager
from ..models import ListingMirror

# Largest id list accepted by one multi-get
MAX_BATCH_GET = 100


class ListingMirrorCRUD:
    def __init__(self, db: DatabaseManager, max_batch_get: int = MAX_BATCH_GET):
        self.db = db
        self.max_batch_get = max_batch_get

    async def get_many(self, listing_ids: Iterable[str]) -> Dict[str, ListingMirror]:
        """Fetch mirrors for up to ``max_batch_get`` listings in one round trip.

        Ids with no stored mirror are absent from the result.
        """
        ids = list(listing_ids)
        if not ids:
            return {}
        if len(ids) > self.max_batch_get:
            raise ValueError(f"batch get of {len(ids)} ids exceeds limit {self.max_batch_get}")

        query = """
        SELECT listing_id, seller_uid, ref_path
        FROM listing_mirrors
        WHERE listing_id = ANY($1::text[])
        """
        rows = await self.db.fetch_all(query, ids)
        return {
            row["listing_id"]: ListingMirror(
                seller_uid=row["seller_uid"],
                canonical_ref_path=row["ref_path"],
            )
            for row in rows
        }
