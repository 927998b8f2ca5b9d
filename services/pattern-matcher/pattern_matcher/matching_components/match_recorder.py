from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, TypeVar

from pattern_common.crud import MatchCRUD
from pattern_common.error_codes import CommitError
from pattern_common.logging_config import configure_logging
from pattern_common.metrics import metrics
from pattern_common.models import InboxEntry, MatchAudit

logger = configure_logging("pattern-matcher:match_recorder")

# Each recorded match stages one audit write and one inbox write
OPS_PER_MATCH = 2
DEFAULT_MAX_OPS_PER_BATCH = 500

T = TypeVar("T")


def _dominant(old_score: float, new_score: float, old_value: Optional[T], new_value: Optional[T]) -> Optional[T]:
    """Pick the value carried by the higher score; on a tie the smaller non-null value."""
    if new_score > old_score:
        return new_value
    if new_score < old_score:
        return old_value
    present = [v for v in (old_value, new_value) if v is not None]
    return min(present) if present else None


def merge_audit(old: MatchAudit, new: MatchAudit) -> MatchAudit:
    return old.model_copy(update={
        "score": max(old.score, new.score),
        "search_id": _dominant(old.score, new.score, old.search_id, new.search_id),
    })


def merge_inbox(old: InboxEntry, new: InboxEntry) -> InboxEntry:
    return old.model_copy(update={
        "score": max(old.score, new.score),
        "source_tag": _dominant(old.score, new.score, old.source_tag, new.source_tag),
        "seller_uid": old.seller_uid if old.seller_uid is not None else new.seller_uid,
        "listing_ref": old.listing_ref if old.listing_ref is not None else new.listing_ref,
    })


@dataclass
class CommitSummary:
    matches: int = 0
    batches: int = 0


class MatchRecorder:
    """Stages audit + inbox merges for one run and flushes them in bounded batches.

    Staging coalesces by composite key with the same rules the database
    applies, so recording one comparison twice costs nothing extra.
    """

    def __init__(self, match_crud: MatchCRUD, max_ops_per_batch: int = DEFAULT_MAX_OPS_PER_BATCH):
        if max_ops_per_batch < OPS_PER_MATCH:
            raise ValueError(f"max_ops_per_batch must be at least {OPS_PER_MATCH}")
        self.match_crud = match_crud
        self.max_ops_per_batch = max_ops_per_batch
        self._audits: Dict[Tuple[str, str], MatchAudit] = {}
        self._inbox: Dict[Tuple[str, str], InboxEntry] = {}

    @property
    def staged_matches(self) -> int:
        return len(self._audits)

    def record_match(
        self,
        listing_id: str,
        counterparty_id: str,
        score: float,
        source_tag: str,
        search_id: Optional[str] = None,
        seller_uid: Optional[str] = None,
        listing_ref: Optional[str] = None,
    ) -> None:
        audit = MatchAudit(
            listing_id=listing_id,
            counterparty_id=counterparty_id,
            score=score,
            search_id=search_id,
        )
        entry = InboxEntry(
            recipient_id=counterparty_id,
            listing_id=listing_id,
            score=score,
            source_tag=source_tag,
            seller_uid=seller_uid,
            listing_ref=listing_ref,
        )

        audit_key = (listing_id, counterparty_id)
        existing_audit = self._audits.get(audit_key)
        self._audits[audit_key] = merge_audit(existing_audit, audit) if existing_audit else audit

        inbox_key = (counterparty_id, listing_id)
        existing_entry = self._inbox.get(inbox_key)
        self._inbox[inbox_key] = merge_inbox(existing_entry, entry) if existing_entry else entry

    async def commit(self) -> CommitSummary:
        """Flush staged writes as sequential atomic batches.

        Raises ``CommitError`` on the first failed batch. Batches already
        applied stay applied; re-running the whole scan converges.
        """
        pairs: List[Tuple[MatchAudit, InboxEntry]] = [
            (audit, self._inbox[(key[1], key[0])]) for key, audit in self._audits.items()
        ]
        summary = CommitSummary(matches=len(pairs))
        if not pairs:
            return summary

        per_batch = self.max_ops_per_batch // OPS_PER_MATCH
        batches = [pairs[i:i + per_batch] for i in range(0, len(pairs), per_batch)]
        logger.info("batch:commit:start", matches=len(pairs), batches=len(batches))

        for index, batch in enumerate(batches):
            try:
                await self.match_crud.merge_batch(
                    [audit for audit, _ in batch],
                    [entry for _, entry in batch],
                )
            except Exception as e:
                logger.error(
                    "batch:commit:fail",
                    batch=index,
                    committed_batches=summary.batches,
                    error=str(e),
                )
                raise CommitError(
                    f"batch {index + 1}/{len(batches)} failed: {e}",
                    {"batch": index, "committed_batches": summary.batches},
                ) from e
            summary.batches += 1
            metrics.increment_counter("pattern_match.commit_batches")

        self._audits.clear()
        self._inbox.clear()
        logger.info("batch:commit:ok", matches=summary.matches, batches=summary.batches)
        return summary
