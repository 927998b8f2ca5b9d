from .listing_mirror_crud import ListingMirrorCRUD
from .match_crud import MatchCRUD
from .search_record_crud import SearchRecordCRUD

__all__ = [
    'ListingMirrorCRUD',
    'MatchCRUD',
    'SearchRecordCRUD',
]
