"""Seller-side flow: a new listing photo is compared against buyer queries."""

import asyncio
import time
from typing import List, Optional

from pattern_common.crud import MatchCRUD
from pattern_common.error_codes import ScanPageError
from pattern_common.logging_config import configure_logging
from pattern_common.metrics import TimerContext
from pattern_common.models import ListingMirror
from pattern_common.object_store import ObjectStore

from ..matching_components.asset_paths import (
    active_query_prefix,
    parse_active_query_path,
    parse_static_query_path,
    search_id_for,
    static_query_prefix,
)
from ..matching_components.asset_scanner import AssetStoreScanner, ScanResult, filter_by_brand_and_extension
from ..matching_components.compare_and_record import (
    Candidate,
    CompareStats,
    MatchHit,
    compare_and_record,
    iter_pages,
    store_fingerprint_loader,
)
from ..matching_components.hash_codec import compute_fingerprint
from ..matching_components.match_recorder import MatchRecorder
from ..matching_components.mirror_resolver import MirrorResolver
from ..matching_components.search_index import ActiveSearchIndex
from ..matching_components.threshold_policy import ThresholdPolicy
from .data_models import RunResult, RunSettings

logger = configure_logging("pattern-matcher:listing_upload_handler")

STATIC_QUERY_TAG = "pattern_queries"
ACTIVE_QUERY_TAG = "users_active_patterns"
ACTIVE_SEARCH_TAG = "active_search"


class ListingUploadHandler:
    """Fingerprint -> scan buyer prefixes -> query active searches -> record -> commit."""

    def __init__(
        self,
        store: ObjectStore,
        search_index: ActiveSearchIndex,
        mirror_resolver: MirrorResolver,
        match_crud: MatchCRUD,
        settings: RunSettings,
    ):
        self.store = store
        self.search_index = search_index
        self.mirror_resolver = mirror_resolver
        self.match_crud = match_crud
        self.settings = settings
        self.scanner = AssetStoreScanner(store, settings.scan_page_size)
        self.policy = ThresholdPolicy(settings.threshold)
        self.load_fingerprint = store_fingerprint_loader(store, settings.min_image_bytes)

    async def run(self, listing_id: str, brand: str, data: bytes, path: Optional[str] = None) -> RunResult:
        """Raises ``DecodeError`` before any write if ``data`` is not a usable image."""
        started = time.monotonic()
        deadline = started + self.settings.run_budget_seconds
        brand = brand.lower()
        result = RunResult(flow="listing", path=path or "", brand=brand, listing_id=listing_id)

        fingerprint = await asyncio.to_thread(compute_fingerprint, data, self.settings.min_image_bytes)
        logger.info("listing:fingerprint", listing_id=listing_id, brand=brand, fingerprint=fingerprint)

        own = await self._resolve_own_mirror(listing_id)
        recorder = MatchRecorder(self.match_crud, self.settings.write_batch_limit)

        def record(hit: MatchHit) -> None:
            recorder.record_match(
                listing_id=listing_id,
                counterparty_id=hit.candidate.owner_id,
                score=hit.score,
                source_tag=hit.candidate.source_tag,
                search_id=hit.candidate.search_id,
                seller_uid=own.seller_uid,
                listing_ref=own.canonical_ref_path,
            )

        with TimerContext("pattern_match.stage.scan", {"flow": "listing"}):
            storage_candidates = await self._storage_candidates(brand, result)
        logger.info(
            "listing:candidates",
            listing_id=listing_id,
            storage=len(storage_candidates),
            truncated=result.truncated,
        )
        stats = await self._compare(fingerprint, storage_candidates, record, deadline)
        self._accumulate(result, stats, len(storage_candidates))

        if not result.budget_exhausted:
            searches = await self.search_index.find_active_searches_by_brand(brand)
            index_candidates = [
                Candidate(
                    owner_id=s.uid,
                    source_tag=ACTIVE_SEARCH_TAG,
                    path=s.image_path,
                    fingerprint=s.fingerprint,
                    search_id=s.search_id,
                )
                for s in searches
            ]
            stats = await self._compare(fingerprint, index_candidates, record, deadline)
            self._accumulate(result, stats, len(index_candidates))

        with TimerContext("pattern_match.stage.commit", {"flow": "listing"}):
            summary = await recorder.commit()
        result.matches = summary.matches
        result.commit_batches = summary.batches
        result.elapsed_seconds = round(time.monotonic() - started, 3)

        logger.info(
            "listing:done",
            listing_id=listing_id,
            candidates=result.candidates,
            matches=result.matches,
            failed=result.failed_candidates,
            truncated=result.truncated,
            budget_exhausted=result.budget_exhausted,
            seconds=result.elapsed_seconds,
        )
        return result

    async def _resolve_own_mirror(self, listing_id: str) -> ListingMirror:
        if not self.settings.resolve_listing_mirror:
            return ListingMirror()
        mirrors = await self.mirror_resolver.resolve_listing_mirrors([listing_id])
        return mirrors.get(listing_id) or ListingMirror()

    async def _storage_candidates(self, brand: str, result: RunResult) -> List[Candidate]:
        candidates: List[Candidate] = []

        static = await self._scan(static_query_prefix(brand), result)
        for item in filter_by_brand_and_extension(static.items, brand, brand_segment=1):
            parsed = parse_static_query_path(item.path)
            if parsed:
                candidates.append(Candidate(owner_id=parsed.uid, source_tag=STATIC_QUERY_TAG, path=item.path))

        active = await self._scan(active_query_prefix(), result)
        for item in filter_by_brand_and_extension(active.items, brand, brand_segment=2):
            parsed = parse_active_query_path(item.path)
            if parsed:
                candidates.append(
                    Candidate(
                        owner_id=parsed.uid,
                        source_tag=ACTIVE_QUERY_TAG,
                        path=item.path,
                        search_id=search_id_for(parsed.uid, parsed.brand, item.path),
                    )
                )
        return candidates

    async def _scan(self, prefix: str, result: RunResult) -> ScanResult:
        try:
            scan = await self.scanner.list_assets_under_prefix(prefix, self.settings.max_to_scan)
        except ScanPageError as e:
            logger.warning("listing:scan:partial", prefix=prefix, collected=len(e.partial.items), error=str(e))
            scan = e.partial
        result.truncated = result.truncated or scan.truncated
        logger.info("scan:done", prefix=prefix, items=len(scan.items), pages=scan.pages, truncated=scan.truncated)
        return scan

    async def _compare(self, fingerprint: str, candidates: List[Candidate], record, deadline: float) -> CompareStats:
        return await compare_and_record(
            fingerprint,
            iter_pages(candidates, self.settings.scan_page_size),
            record,
            policy=self.policy,
            fingerprint_loader=self.load_fingerprint,
            max_workers=self.settings.max_concurrent_downloads,
            deadline=deadline,
            log_sample=self.settings.compare_log_sample,
        )

    @staticmethod
    def _accumulate(result: RunResult, stats: CompareStats, candidates: int) -> None:
        result.candidates += candidates
        result.failed_candidates += stats.failed
        result.budget_exhausted = result.budget_exhausted or stats.budget_exhausted
