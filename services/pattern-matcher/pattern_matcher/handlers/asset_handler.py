"""Event handler for asset-finalized notifications."""

from typing import Any, Dict, Optional

from pattern_common.database import DatabaseManager
from pattern_common.logging_config import configure_logging
from pattern_common.messaging import MessageBroker
from pattern_common.metrics import metrics
from pattern_common.object_store import LocalObjectStore

from ..config_loader import config
from ..services.data_models import RunResult, RunSettings
from ..services.service import PatternMatchService
from .decorators import handle_errors, validate_event

logger = configure_logging("pattern-matcher:asset_handler")


class AssetFinalizedHandler:
    def __init__(self) -> None:
        self.db = DatabaseManager(config.POSTGRES_DSN)
        self.broker = MessageBroker(config.BUS_BROKER)
        self.store = LocalObjectStore(config.DATA_ROOT, config.BUCKET_ID)
        self.service = PatternMatchService(self.db, self.store, RunSettings.from_config(config))
        self.initialized = False

    async def initialize(self) -> None:
        if not self.initialized:
            logger.info("Asset handler ready", bucket=self.store.bucket_id, topic=config.ASSET_TOPIC)
            self.initialized = True

    @handle_errors
    @validate_event("asset_finalized")
    async def handle_asset_finalized(self, event_data: Dict[str, Any], correlation_id: Optional[str]) -> RunResult:
        bucket_id = event_data.get("bucket_id")
        if bucket_id and bucket_id != self.store.bucket_id:
            logger.debug("Skipping event for another bucket", bucket_id=bucket_id, path=event_data.get("path"))
            return RunResult(flow="ignored", outcome="ignored", path=event_data["path"], reason="other_bucket")

        result = await self.service.handle_asset_finalized(event_data)
        if result.outcome != "ignored":
            metrics.log_snapshot()
        return result
