"""Object-store path layout shared by the dispatcher and the scanners.

    active_listing_patterns/brands/{brand}/{listingId}/pattern.{ext}   seller listing
    users_active_patterns/{uid}/{brand}/{clientRef}.{ext}              buyer active search
    pattern_queries/{brand}/{uid}/{name}.{ext}                         buyer static query

Brands are compared lowercased.
"""

import uuid
from pathlib import PurePosixPath
from typing import NamedTuple, Optional

LISTING_ROOT = "active_listing_patterns"
ACTIVE_QUERY_ROOT = "users_active_patterns"
STATIC_QUERY_ROOT = "pattern_queries"

LISTING_FILE_STEM = "pattern"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")

# Fixed namespace for search ids derived from the upload key
SEARCH_ID_NAMESPACE = uuid.UUID("6f1c9f0e-3b7a-5d2e-9c41-8a0b7e5d2f13")


class ListingPath(NamedTuple):
    brand: str
    listing_id: str


class ActiveQueryPath(NamedTuple):
    uid: str
    brand: str
    client_ref: str


class StaticQueryPath(NamedTuple):
    brand: str
    uid: str


def listing_prefix(brand: str) -> str:
    return f"{LISTING_ROOT}/brands/{brand.lower()}/"


def static_query_prefix(brand: str) -> str:
    return f"{STATIC_QUERY_ROOT}/{brand.lower()}/"


def active_query_prefix() -> str:
    # Brand sits below the uid here, so the whole tree is shared across brands
    return f"{ACTIVE_QUERY_ROOT}/"


def search_id_for(uid: str, brand: str, image_path: str) -> str:
    """Stable search id for one upload, unique per (uid, brand, image_path).

    The filename stem is chosen by the client and is only unique within one
    user's folder, so it never serves as the record key on its own.
    """
    key = f"{uid}\n{brand.lower()}\n{image_path}"
    return uuid.uuid5(SEARCH_ID_NAMESPACE, key).hex


def has_image_extension(path: str) -> bool:
    return path.lower().endswith(IMAGE_EXTENSIONS)


def parse_listing_path(path: str) -> Optional[ListingPath]:
    parts = path.split("/")
    if len(parts) < 4 or parts[-4] != "brands":
        return None
    brand, listing_id, filename = parts[-3], parts[-2], parts[-1]
    if not brand or not listing_id:
        return None
    if PurePosixPath(filename).stem != LISTING_FILE_STEM or not has_image_extension(filename):
        return None
    return ListingPath(brand.lower(), listing_id)


def parse_active_query_path(path: str) -> Optional[ActiveQueryPath]:
    parts = path.split("/")
    if len(parts) != 4 or parts[0] != ACTIVE_QUERY_ROOT:
        return None
    uid, brand, filename = parts[1], parts[2], parts[3]
    client_ref = PurePosixPath(filename).stem
    if not uid or not brand or not client_ref or not has_image_extension(filename):
        return None
    return ActiveQueryPath(uid, brand.lower(), client_ref)


def parse_static_query_path(path: str) -> Optional[StaticQueryPath]:
    parts = path.split("/")
    if len(parts) < 4 or parts[0] != STATIC_QUERY_ROOT:
        return None
    brand, uid = parts[1], parts[2]
    if not brand or not uid or not parts[-1] or not has_image_extension(parts[-1]):
        return None
    return StaticQueryPath(brand.lower(), uid)
