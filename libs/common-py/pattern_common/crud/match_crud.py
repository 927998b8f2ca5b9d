from typing import List, Sequence

from ..database import DatabaseManager
from ..models import InboxEntry, MatchAudit

# Every statement below is an idempotent, order-independent merge:
#   score       -> GREATEST of both writes
#   provenance  -> taken from the higher-scoring write, ties go to the smaller value
#   enrichment  -> first non-null wins
#   created_at  -> set once on insert
#   seen        -> only ever written by the inbox consumer
AUDIT_UPSERT = """
INSERT INTO match_audits (listing_id, counterparty_id, score, search_id, created_at)
VALUES ($1, $2, $3, $4, NOW())
ON CONFLICT (listing_id, counterparty_id) DO UPDATE SET
    search_id = CASE
        WHEN EXCLUDED.score > match_audits.score THEN EXCLUDED.search_id
        WHEN EXCLUDED.score < match_audits.score THEN match_audits.search_id
        ELSE LEAST(match_audits.search_id, EXCLUDED.search_id)
    END,
    score = GREATEST(match_audits.score, EXCLUDED.score)
"""

INBOX_UPSERT = """
INSERT INTO match_inbox (recipient_id, listing_id, score, source_tag, seller_uid, listing_ref, seen, created_at)
VALUES ($1, $2, $3, $4, $5, $6, FALSE, NOW())
ON CONFLICT (recipient_id, listing_id) DO UPDATE SET
    source_tag = CASE
        WHEN EXCLUDED.score > match_inbox.score THEN EXCLUDED.source_tag
        WHEN EXCLUDED.score < match_inbox.score THEN match_inbox.source_tag
        ELSE LEAST(match_inbox.source_tag, EXCLUDED.source_tag)
    END,
    score = GREATEST(match_inbox.score, EXCLUDED.score),
    seller_uid = COALESCE(match_inbox.seller_uid, EXCLUDED.seller_uid),
    listing_ref = COALESCE(match_inbox.listing_ref, EXCLUDED.listing_ref)
"""


class MatchCRUD:
    def __init__(self, db: DatabaseManager):
        self.db = db

    async def merge_batch(self, audits: Sequence[MatchAudit], inbox: Sequence[InboxEntry]) -> None:
        """Apply one atomic batch of audit and inbox merges."""
        audit_rows: List[tuple] = [
            (a.listing_id, a.counterparty_id, a.score, a.search_id) for a in audits
        ]
        inbox_rows: List[tuple] = [
            (e.recipient_id, e.listing_id, e.score, e.source_tag, e.seller_uid, e.listing_ref)
            for e in inbox
        ]
        async with self.db.transaction() as conn:
            if audit_rows:
                await conn.executemany(AUDIT_UPSERT, audit_rows)
            if inbox_rows:
                await conn.executemany(INBOX_UPSERT, inbox_rows)
