"""Unit tests for chunked mirror resolution."""

import pytest

from pattern_common.models import ListingMirror
from pattern_matcher.matching_components.mirror_resolver import MirrorResolver
from support.fakes import FakeListingMirrorCRUD

pytestmark = pytest.mark.unit


class TestMirrorResolver:
    @pytest.mark.asyncio
    async def test_chunks_requests(self):
        crud = FakeListingMirrorCRUD({f"L{i:03d}": ListingMirror(seller_uid=f"s{i}") for i in range(250)})

        result = await MirrorResolver(crud, chunk_size=100).resolve_listing_mirrors(f"L{i:03d}" for i in range(250))

        assert [len(c) for c in crud.calls] == [100, 100, 50]
        assert result["L007"].seller_uid == "s7"
        assert len(result) == 250

    @pytest.mark.asyncio
    async def test_deduplicates_ids(self):
        crud = FakeListingMirrorCRUD()

        await MirrorResolver(crud).resolve_listing_mirrors(["L2", "L1", "L2"])

        assert crud.calls == [["L1", "L2"]]

    @pytest.mark.asyncio
    async def test_unknown_ids_map_to_empty(self):
        crud = FakeListingMirrorCRUD({"L1": ListingMirror(seller_uid="s1", canonical_ref_path="listings/L1")})

        result = await MirrorResolver(crud).resolve_listing_mirrors({"L1", "L2"})

        assert result["L1"].canonical_ref_path == "listings/L1"
        assert result["L2"] == ListingMirror()

    @pytest.mark.asyncio
    async def test_failed_chunk_degrades_to_empty(self):
        crud = FakeListingMirrorCRUD({"A": ListingMirror(seller_uid="sa"), "C": ListingMirror(seller_uid="sc")})
        crud.failing_ids = {"C"}

        result = await MirrorResolver(crud, chunk_size=2).resolve_listing_mirrors(["A", "B", "C"])

        assert result["A"].seller_uid == "sa"
        assert result["C"] == ListingMirror()
        assert len(crud.calls) == 2

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self):
        crud = FakeListingMirrorCRUD()

        assert await MirrorResolver(crud).resolve_listing_mirrors([]) == {}
        assert crud.calls == []

    def test_chunk_size_bounded_by_store_limit(self):
        with pytest.raises(ValueError):
            MirrorResolver(FakeListingMirrorCRUD(max_batch_get=100), chunk_size=101)
