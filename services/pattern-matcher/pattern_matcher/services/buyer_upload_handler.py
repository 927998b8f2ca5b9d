"""Buyer-side flow: a new search photo is compared against seller listings."""

import asyncio
import time
from typing import Dict, List, Optional

from pattern_common.crud import MatchCRUD, SearchRecordCRUD
from pattern_common.error_codes import ScanPageError
from pattern_common.logging_config import configure_logging
from pattern_common.metrics import TimerContext
from pattern_common.object_store import ObjectStore

from ..matching_components.asset_paths import listing_prefix, parse_listing_path, search_id_for
from ..matching_components.asset_scanner import AssetStoreScanner, filter_by_brand_and_extension
from ..matching_components.compare_and_record import (
    Candidate,
    MatchHit,
    compare_and_record,
    iter_pages,
    store_fingerprint_loader,
)
from ..matching_components.hash_codec import compute_fingerprint
from ..matching_components.match_recorder import MatchRecorder
from ..matching_components.mirror_resolver import MirrorResolver
from ..matching_components.threshold_policy import ThresholdPolicy
from .data_models import RunResult, RunSettings

logger = configure_logging("pattern-matcher:buyer_upload_handler")

STORAGE_SCAN_TAG = "storage_scan"


class BuyerUploadHandler:
    def __init__(
        self,
        store: ObjectStore,
        search_crud: SearchRecordCRUD,
        mirror_resolver: MirrorResolver,
        match_crud: MatchCRUD,
        settings: RunSettings,
    ):
        self.store = store
        self.search_crud = search_crud
        self.mirror_resolver = mirror_resolver
        self.match_crud = match_crud
        self.settings = settings
        self.scanner = AssetStoreScanner(store, settings.scan_page_size)
        self.policy = ThresholdPolicy(settings.threshold)
        self.load_fingerprint = store_fingerprint_loader(store, settings.min_image_bytes)

    async def run(
        self,
        uid: str,
        brand: str,
        data: bytes,
        image_path: str,
        client_ref: Optional[str] = None,
    ) -> RunResult:
        """Upsert the buyer's search, then match it against the brand's listings.

        The record is keyed by ``search_id_for(uid, brand, image_path)``;
        ``client_ref`` is the client-chosen filename stem, stored alongside.
        Raises ``DecodeError`` before any write if ``data`` is not a usable
        image.
        """
        started = time.monotonic()
        deadline = started + self.settings.run_budget_seconds
        brand = brand.lower()

        fingerprint = await asyncio.to_thread(compute_fingerprint, data, self.settings.min_image_bytes)
        logger.info("buyer:fingerprint", uid=uid, brand=brand, fingerprint=fingerprint)

        record = await self.search_crud.upsert_search(
            search_id_for(uid, brand, image_path), uid, brand, image_path, fingerprint, client_ref=client_ref
        )
        logger.info("buyer:search:upserted", uid=uid, search_id=record.search_id)
        result = RunResult(flow="buyer", path=image_path, brand=brand, uid=uid, search_id=record.search_id)

        prefix = listing_prefix(brand)
        with TimerContext("pattern_match.stage.scan", {"flow": "buyer"}):
            try:
                scan = await self.scanner.list_assets_under_prefix(prefix, self.settings.max_to_scan)
            except ScanPageError as e:
                logger.warning("buyer:scan:partial", prefix=prefix, collected=len(e.partial.items), error=str(e))
                scan = e.partial
        result.truncated = scan.truncated

        candidates: List[Candidate] = []
        for item in filter_by_brand_and_extension(scan.items, brand):
            parsed = parse_listing_path(item.path)
            if parsed:
                candidates.append(
                    Candidate(
                        owner_id=parsed.listing_id,
                        source_tag=STORAGE_SCAN_TAG,
                        path=item.path,
                        listing_id=parsed.listing_id,
                        search_id=record.search_id,
                    )
                )
        result.candidates = len(candidates)
        logger.info("buyer:candidates", uid=uid, count=len(candidates), pages=scan.pages, truncated=scan.truncated)

        hits: List[MatchHit] = []
        stats = await compare_and_record(
            fingerprint,
            iter_pages(candidates, self.settings.scan_page_size),
            hits.append,
            policy=self.policy,
            fingerprint_loader=self.load_fingerprint,
            max_workers=self.settings.max_concurrent_downloads,
            deadline=deadline,
            log_sample=self.settings.compare_log_sample,
        )
        result.failed_candidates = stats.failed
        result.budget_exhausted = stats.budget_exhausted

        best: Dict[str, MatchHit] = {}
        for hit in hits:
            listing_id = hit.candidate.listing_id
            if listing_id not in best or hit.score > best[listing_id].score:
                best[listing_id] = hit

        mirrors = await self.mirror_resolver.resolve_listing_mirrors(best.keys())

        recorder = MatchRecorder(self.match_crud, self.settings.write_batch_limit)
        for listing_id, hit in best.items():
            mirror = mirrors.get(listing_id)
            recorder.record_match(
                listing_id=listing_id,
                counterparty_id=uid,
                score=hit.score,
                source_tag=STORAGE_SCAN_TAG,
                search_id=record.search_id,
                seller_uid=mirror.seller_uid if mirror else None,
                listing_ref=mirror.canonical_ref_path if mirror else None,
            )

        with TimerContext("pattern_match.stage.commit", {"flow": "buyer"}):
            summary = await recorder.commit()
        result.matches = summary.matches
        result.commit_batches = summary.batches
        result.elapsed_seconds = round(time.monotonic() - started, 3)

        logger.info(
            "buyer:done",
            uid=uid,
            search_id=record.search_id,
            candidates=result.candidates,
            matches=result.matches,
            failed=result.failed_candidates,
            truncated=result.truncated,
            seconds=result.elapsed_seconds,
        )
        return result
