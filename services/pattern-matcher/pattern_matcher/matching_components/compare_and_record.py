"""Shared comparison loop used by both upload flows.

Candidates arrive in pages from an async provider. Each page is evaluated
with bounded concurrency: a candidate's fingerprint is taken as cached or
loaded through ``fingerprint_loader``, compared against the run's own
fingerprint, and every accepted comparison is handed to ``record_sink``.
A candidate that cannot be downloaded or decoded is counted and skipped.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, Optional

from pattern_common.error_codes import DecodeError, TransientStoreError
from pattern_common.logging_config import configure_logging
from pattern_common.metrics import metrics
from pattern_common.object_store import ObjectStore

from .hash_codec import MIN_IMAGE_BYTES, compute_fingerprint, hamming_distance, is_fingerprint
from .threshold_policy import ThresholdPolicy

logger = configure_logging("pattern-matcher:compare_and_record")

DEFAULT_MAX_WORKERS = 8

# Per-candidate failures that skip the candidate instead of aborting the run
CANDIDATE_ERRORS = (TransientStoreError, DecodeError, ValueError)


@dataclass(frozen=True)
class Candidate:
    """One thing to compare against.

    ``owner_id`` is who gets notified (listing flow) or the listing id
    (buyer flow). ``path`` is where to load the image from when no cached
    ``fingerprint`` is available.
    """

    owner_id: str
    source_tag: str
    path: Optional[str] = None
    fingerprint: Optional[str] = None
    listing_id: Optional[str] = None
    search_id: Optional[str] = None


@dataclass(frozen=True)
class MatchHit:
    candidate: Candidate
    distance: int
    score: float


@dataclass
class CompareStats:
    pages: int = 0
    compared: int = 0
    matched: int = 0
    failed: int = 0
    budget_exhausted: bool = False


FingerprintLoader = Callable[[Candidate], Awaitable[str]]
RecordSink = Callable[[MatchHit], None]


def store_fingerprint_loader(store: ObjectStore, min_bytes: int = MIN_IMAGE_BYTES) -> FingerprintLoader:
    """Loader that downloads ``candidate.path`` and hashes it off the event loop."""

    async def load(candidate: Candidate) -> str:
        if not candidate.path:
            raise ValueError(f"candidate {candidate.owner_id} has neither fingerprint nor path")
        data = await store.get(candidate.path)
        return await asyncio.to_thread(compute_fingerprint, data, min_bytes)

    return load


async def iter_pages(candidates: Iterable[Candidate], page_size: int) -> AsyncIterator[List[Candidate]]:
    """Adapt an in-memory candidate list to the paged provider interface."""
    page: List[Candidate] = []
    for candidate in candidates:
        page.append(candidate)
        if len(page) >= page_size:
            yield page
            page = []
    if page:
        yield page


async def compare_and_record(
    own_fingerprint: str,
    candidate_provider: AsyncIterator[List[Candidate]],
    record_sink: RecordSink,
    *,
    policy: ThresholdPolicy,
    fingerprint_loader: FingerprintLoader,
    max_workers: int = DEFAULT_MAX_WORKERS,
    deadline: Optional[float] = None,
    log_sample: int = 5,
) -> CompareStats:
    """Compare ``own_fingerprint`` against every candidate the provider yields.

    ``deadline`` is a ``time.monotonic()`` value; once passed, no further
    pages are started and ``budget_exhausted`` is set. Errors other than
    per-candidate download/decode failures propagate.
    """
    stats = CompareStats()
    semaphore = asyncio.Semaphore(max(1, max_workers))

    async def evaluate(candidate: Candidate) -> int:
        fingerprint = candidate.fingerprint
        if not is_fingerprint(fingerprint):
            async with semaphore:
                fingerprint = await fingerprint_loader(candidate)
        return hamming_distance(own_fingerprint, fingerprint)

    async for page in candidate_provider:
        if deadline is not None and time.monotonic() >= deadline:
            stats.budget_exhausted = True
            logger.warning("compare:budget_exhausted", pages=stats.pages, compared=stats.compared)
            break

        stats.pages += 1
        outcomes = await asyncio.gather(*(evaluate(c) for c in page), return_exceptions=True)

        for candidate, outcome in zip(page, outcomes):
            if isinstance(outcome, CANDIDATE_ERRORS):
                stats.failed += 1
                metrics.increment_counter("pattern_match.candidate_failures")
                logger.warning(
                    "compare:candidate:fail",
                    owner_id=candidate.owner_id,
                    path=candidate.path,
                    error=str(outcome),
                )
                continue
            if isinstance(outcome, BaseException):
                raise outcome

            stats.compared += 1
            matched = policy.is_match(outcome)
            if stats.compared <= log_sample:
                logger.info(
                    "compare",
                    owner_id=candidate.owner_id,
                    source=candidate.source_tag,
                    distance=outcome,
                    threshold=policy.threshold,
                    match=matched,
                )
            if matched:
                stats.matched += 1
                record_sink(MatchHit(candidate, outcome, policy.score(outcome)))

    metrics.increment_counter("pattern_match.candidates", stats.compared + stats.failed)
    metrics.increment_counter("pattern_match.matches", stats.matched)
    return stats
