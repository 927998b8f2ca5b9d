"""Entry point for one asset-finalized event."""

import uuid
from typing import Any, Dict

from pattern_common.crud import ListingMirrorCRUD, MatchCRUD, SearchRecordCRUD
from pattern_common.database import DatabaseManager
from pattern_common.error_codes import DecodeError
from pattern_common.logging_config import configure_logging, set_run_id
from pattern_common.metrics import metrics
from pattern_common.models import AssetFinalized, ImageAsset
from pattern_common.object_store import ObjectStore

from ..matching_components.mirror_resolver import MirrorResolver
from ..matching_components.search_index import ActiveSearchIndex
from .buyer_upload_handler import BuyerUploadHandler
from .data_models import RunResult, RunSettings
from .dispatcher import BuyerUpload, Ignored, ListingUpload, classify
from .listing_upload_handler import ListingUploadHandler

logger = configure_logging("pattern-matcher:service")


class PatternMatchService:
    """Routes an upload to the listing or buyer flow and reports the outcome."""

    def __init__(self, db: DatabaseManager, store: ObjectStore, settings: RunSettings) -> None:
        self.db = db
        self.store = store
        self.settings = settings
        self.search_crud = SearchRecordCRUD(db)
        self.mirror_crud = ListingMirrorCRUD(db)
        self.match_crud = MatchCRUD(db)

        mirror_resolver = MirrorResolver(self.mirror_crud, settings.mirror_chunk_size)
        self.listing_handler = ListingUploadHandler(
            store,
            ActiveSearchIndex(self.search_crud),
            mirror_resolver,
            self.match_crud,
            settings,
        )
        self.buyer_handler = BuyerUploadHandler(
            store,
            self.search_crud,
            mirror_resolver,
            self.match_crud,
            settings,
        )

    async def handle_asset_finalized(self, event_data: Dict[str, Any]) -> RunResult:
        """Run the flow selected by the object's path.

        Unrecognized paths are ignored. An undecodable image ends the run as
        ``aborted`` with no writes. Store, query and commit failures propagate
        so the delivery is retried.
        """
        event = AssetFinalized(**event_data)
        route = classify(event)

        if isinstance(route, Ignored):
            logger.debug("asset:ignored", path=route.path, reason=route.reason)
            metrics.increment_counter("pattern_match.runs", tags={"outcome": "ignored"})
            return RunResult(flow="ignored", outcome="ignored", path=route.path, reason=route.reason)

        set_run_id(uuid.uuid4().hex)
        flow = "listing" if isinstance(route, ListingUpload) else "buyer"
        logger.info("run:start", flow=flow, path=route.path, brand=route.brand)

        data = await self.store.get(route.path)
        asset = ImageAsset(
            data=data,
            path=route.path,
            brand=route.brand,
            owner_id=route.listing_id if isinstance(route, ListingUpload) else route.uid,
        )

        try:
            if isinstance(route, ListingUpload):
                result = await self.listing_handler.run(route.listing_id, asset.brand, asset.data, path=asset.path)
            else:
                result = await self._run_buyer(route, asset)
        except DecodeError as e:
            logger.error("run:aborted", flow=flow, path=route.path, error=str(e), details=e.details)
            metrics.increment_counter("pattern_match.runs", tags={"outcome": "aborted"})
            return RunResult(
                flow=flow,
                outcome="aborted",
                path=route.path,
                brand=route.brand,
                listing_id=getattr(route, "listing_id", None),
                uid=getattr(route, "uid", None),
                reason=e.message,
            )
        finally:
            set_run_id(None)

        metrics.increment_counter("pattern_match.runs", tags={"outcome": result.outcome})
        return result

    async def _run_buyer(self, route: BuyerUpload, asset: ImageAsset) -> RunResult:
        return await self.buyer_handler.run(
            route.uid,
            asset.brand,
            asset.data,
            image_path=asset.path,
            client_ref=route.client_ref,
        )
