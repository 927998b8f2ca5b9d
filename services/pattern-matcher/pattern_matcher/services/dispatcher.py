"""Classify asset-finalized events by object path."""

from dataclasses import dataclass
from typing import Optional, Union

from pattern_common.models import AssetFinalized

from ..matching_components.asset_paths import (
    parse_active_query_path,
    parse_listing_path,
    parse_static_query_path,
)


@dataclass(frozen=True)
class ListingUpload:
    path: str
    brand: str
    listing_id: str


@dataclass(frozen=True)
class BuyerUpload:
    path: str
    uid: str
    brand: str
    client_ref: Optional[str] = None


@dataclass(frozen=True)
class Ignored:
    path: str
    reason: str


Classified = Union[ListingUpload, BuyerUpload, Ignored]


def classify(event: AssetFinalized) -> Classified:
    path = (event.path or "").strip("/")
    if not path:
        return Ignored(event.path, "empty_path")

    active = parse_active_query_path(path)
    if active:
        return BuyerUpload(path, active.uid, active.brand, active.client_ref)

    static = parse_static_query_path(path)
    if static:
        return BuyerUpload(path, static.uid, static.brand)

    listing = parse_listing_path(path)
    if listing:
        return ListingUpload(path, listing.brand, listing.listing_id)

    return Ignored(path, "unrecognized_path")
