from typing import List

from pattern_common.crud import SearchRecordCRUD
from pattern_common.error_codes import IndexUnavailableError
from pattern_common.logging_config import configure_logging
from pattern_common.metrics import TimerContext
from pattern_common.models import SearchRecord

logger = configure_logging("pattern-matcher:search_index")


class ActiveSearchIndex:
    """Active buyer searches by brand.

    The compound (brand AND active) query is tried first. If the database
    cannot serve it, a brand-only query is filtered in memory instead. Both
    paths return the same records in the same order.
    """

    def __init__(self, search_crud: SearchRecordCRUD):
        self.search_crud = search_crud

    async def find_active_searches_by_brand(self, brand: str) -> List[SearchRecord]:
        brand = brand.lower()
        with TimerContext("pattern_match.search_index", {"brand": brand}) as timer:
            try:
                records = await self.search_crud.find_active_by_brand(brand)
                mode = "compound"
            except IndexUnavailableError as e:
                logger.warning("searches:compound:unavailable", brand=brand, error=str(e))
                records = [r for r in await self.search_crud.find_by_brand(brand) if r.is_active]
                mode = "brand_only_fallback"

        logger.info("searches:end", brand=brand, mode=mode, count=len(records), seconds=round(timer.elapsed, 3))
        return records
