"""Tests for the CRUD classes against a mocked database manager."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from pattern_common.crud import ListingMirrorCRUD, MatchCRUD, SearchRecordCRUD
from pattern_common.error_codes import IndexUnavailableError
from pattern_common.models import InboxEntry, MatchAudit

pytestmark = pytest.mark.unit

ROW = {
    "search_id": "s1",
    "uid": "u1",
    "brand": "gucci",
    "image_path": "users_active_patterns/u1/gucci/s1.jpg",
    "fingerprint": "0123456789abcdef",
    "client_ref": "s1",
    "is_active": True,
    "created_at": None,
    "updated_at": None,
}


@pytest.fixture
def db():
    mock = MagicMock()
    mock.fetch_all = AsyncMock(return_value=[])
    mock.fetch_one = AsyncMock(return_value=ROW)
    return mock


class TestSearchRecordCRUD:
    @pytest.mark.asyncio
    async def test_find_active_by_brand(self, db):
        db.fetch_all.return_value = [ROW]

        records = await SearchRecordCRUD(db).find_active_by_brand("gucci")

        assert records[0].search_id == "s1"
        query, brand = db.fetch_all.call_args.args
        assert "is_active = TRUE" in query
        assert brand == "gucci"

    @pytest.mark.asyncio
    async def test_unready_index_becomes_index_unavailable(self, db):
        db.fetch_all.side_effect = asyncpg.exceptions.ObjectNotInPrerequisiteStateError("index invalid")

        with pytest.raises(IndexUnavailableError):
            await SearchRecordCRUD(db).find_active_by_brand("gucci")

    @pytest.mark.asyncio
    async def test_upsert_keys_on_upload(self, db):
        record = await SearchRecordCRUD(db).upsert_search("new-id", "u1", "gucci", ROW["image_path"], ROW["fingerprint"])

        query = db.fetch_one.call_args.args[0]
        assert "ON CONFLICT (uid, brand, image_path)" in query
        assert record.search_id == "s1"

    @pytest.mark.asyncio
    async def test_upsert_passes_client_ref_and_keeps_existing(self, db):
        await SearchRecordCRUD(db).upsert_search("k1", "u1", "gucci", ROW["image_path"], ROW["fingerprint"], client_ref="s1")

        query, *params = db.fetch_one.call_args.args
        assert params == ["k1", "u1", "gucci", ROW["image_path"], ROW["fingerprint"], "s1"]
        assert "COALESCE(EXCLUDED.client_ref, pattern_searches.client_ref)" in query


class TestListingMirrorCRUD:
    @pytest.mark.asyncio
    async def test_get_many(self, db):
        db.fetch_all.return_value = [{"listing_id": "L1", "seller_uid": "s", "ref_path": "listings/L1"}]

        result = await ListingMirrorCRUD(db).get_many(["L1", "L2"])

        assert set(result) == {"L1"}
        assert result["L1"].canonical_ref_path == "listings/L1"

    @pytest.mark.asyncio
    async def test_rejects_oversized_batch(self, db):
        with pytest.raises(ValueError):
            await ListingMirrorCRUD(db, max_batch_get=2).get_many(["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_empty_input_skips_query(self, db):
        assert await ListingMirrorCRUD(db).get_many([]) == {}
        db.fetch_all.assert_not_called()


class TestMatchCRUD:
    @pytest.mark.asyncio
    async def test_merge_batch_runs_in_one_transaction(self, db):
        conn = MagicMock()
        conn.executemany = AsyncMock()

        @asynccontextmanager
        async def transaction():
            yield conn

        db.transaction = transaction
        audits = [MatchAudit(listing_id="L1", counterparty_id="u1", score=0.9, search_id="s1")]
        inbox = [InboxEntry(recipient_id="u1", listing_id="L1", score=0.9, source_tag="storage_scan")]

        await MatchCRUD(db).merge_batch(audits, inbox)

        audit_call, inbox_call = conn.executemany.call_args_list
        assert "GREATEST(match_audits.score, EXCLUDED.score)" in audit_call.args[0]
        assert audit_call.args[1] == [("L1", "u1", 0.9, "s1")]
        assert "COALESCE(match_inbox.seller_uid, EXCLUDED.seller_uid)" in inbox_call.args[0]
        assert inbox_call.args[1] == [("u1", "L1", 0.9, "storage_scan", None, None)]
