from typing import List, Optional

import asyncpg

from ..database import DatabaseManager
from ..error_codes import IndexUnavailableError
from ..models import SearchRecord

# Errors Postgres raises when the compound filter cannot be served, e.g. the
# (brand, is_active) index is still being built or has been marked invalid.
_INDEX_UNAVAILABLE_ERRORS = (
    asyncpg.exceptions.FeatureNotSupportedError,
    asyncpg.exceptions.ObjectNotInPrerequisiteStateError,
)

_COLUMNS = "search_id, uid, brand, image_path, fingerprint, client_ref, is_active, created_at, updated_at"


class SearchRecordCRUD:
    def __init__(self, db: DatabaseManager):
        self.db = db

    async def find_active_by_brand(self, brand: str) -> List[SearchRecord]:
        """Compound filter: brand AND is_active."""
        query = f"""
        SELECT {_COLUMNS}
        FROM pattern_searches
        WHERE brand = $1 AND is_active = TRUE
        ORDER BY search_id
        """
        try:
            rows = await self.db.fetch_all(query, brand)
        except _INDEX_UNAVAILABLE_ERRORS as e:
            raise IndexUnavailableError(
                f"compound brand/active query rejected: {e}", {"brand": brand}
            ) from e
        return [SearchRecord(**dict(row)) for row in rows]

    async def find_by_brand(self, brand: str) -> List[SearchRecord]:
        """Brand-only filter; includes inactive records."""
        query = f"""
        SELECT {_COLUMNS}
        FROM pattern_searches
        WHERE brand = $1
        ORDER BY search_id
        """
        rows = await self.db.fetch_all(query, brand)
        return [SearchRecord(**dict(row)) for row in rows]

    async def upsert_search(
        self,
        search_id: str,
        uid: str,
        brand: str,
        image_path: str,
        fingerprint: str,
        client_ref: Optional[str] = None,
    ) -> SearchRecord:
        """Create or reactivate the record for (uid, brand, image_path).

        ``search_id`` must be derived from that triple so the primary key and
        the upload key can never disagree.
        """
        query = f"""
        INSERT INTO pattern_searches (search_id, uid, brand, image_path, fingerprint, client_ref, is_active, created_at, updated_at)
        VALUES ($1, $2, $3, $4, $5, $6, TRUE, NOW(), NOW())
        ON CONFLICT (uid, brand, image_path) DO UPDATE SET
            fingerprint = EXCLUDED.fingerprint,
            client_ref = COALESCE(EXCLUDED.client_ref, pattern_searches.client_ref),
            is_active = TRUE,
            updated_at = NOW()
        RETURNING {_COLUMNS}
        """
        row = await self.db.fetch_one(query, search_id, uid, brand, image_path, fingerprint, client_ref)
        return SearchRecord(**dict(row))

