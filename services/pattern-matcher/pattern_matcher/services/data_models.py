from typing import Any, Optional

from pydantic import BaseModel, Field


class RunSettings(BaseModel):
    """Tunables shared by both upload flows for one run."""
    threshold: int = Field(14, ge=0, le=64, description="Maximum Hamming distance accepted as a match")
    min_image_bytes: int = Field(32, ge=0, description="Size floor below which an image is rejected")
    max_to_scan: int = Field(1000, ge=0, description="Cap on objects enumerated per prefix")
    scan_page_size: int = Field(500, ge=1, description="Objects requested per listing page")
    max_concurrent_downloads: int = Field(8, ge=1, description="Parallel candidate downloads within a page")
    run_budget_seconds: float = Field(100.0, gt=0, description="Soft wall-clock budget for the compare loop")
    write_batch_limit: int = Field(500, ge=2, description="Max write operations per atomic batch")
    mirror_chunk_size: int = Field(100, ge=1, le=100, description="Ids per mirror multi-get")
    compare_log_sample: int = Field(5, ge=0, description="Comparisons logged per run")
    resolve_listing_mirror: bool = Field(True, description="Enrich listing-side inbox entries with seller metadata")

    @classmethod
    def from_config(cls, config: Any) -> "RunSettings":
        return cls(
            threshold=config.PHASH_MATCH_THRESHOLD,
            min_image_bytes=config.MIN_IMAGE_BYTES,
            max_to_scan=config.MAX_TO_SCAN,
            scan_page_size=config.SCAN_PAGE_SIZE,
            max_concurrent_downloads=config.MAX_CONCURRENT_DOWNLOADS,
            run_budget_seconds=config.RUN_BUDGET_SECONDS,
            write_batch_limit=config.WRITE_BATCH_LIMIT,
            mirror_chunk_size=config.MIRROR_CHUNK_SIZE,
            compare_log_sample=config.COMPARE_LOG_SAMPLE,
            resolve_listing_mirror=config.RESOLVE_LISTING_MIRROR,
        )


class RunResult(BaseModel):
    """Summary of one orchestrator run, logged at the end and returned to the trigger."""
    flow: str = Field(..., description="listing, buyer or ignored")
    outcome: str = Field("completed", description="completed, aborted or ignored")
    path: str
    brand: Optional[str] = None
    listing_id: Optional[str] = None
    uid: Optional[str] = None
    search_id: Optional[str] = None
    reason: Optional[str] = None
    candidates: int = 0
    matches: int = 0
    failed_candidates: int = 0
    truncated: bool = False
    budget_exhausted: bool = False
    commit_batches: int = 0
    elapsed_seconds: float = 0.0
