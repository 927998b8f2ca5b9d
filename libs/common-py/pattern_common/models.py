from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class AssetFinalized(BaseModel):
    """Object-store notification that an upload has been fully written."""
    path: str
    bucket_id: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None


class StoredObject(BaseModel):
    """One entry returned by an object-store listing."""
    model_config = ConfigDict(frozen=True)

    path: str
    size_bytes: int = 0


class ImageAsset(BaseModel):
    """Raw image plus what its store path tells us. Never persisted."""
    data: bytes = Field(repr=False)
    path: str
    brand: str
    owner_id: Optional[str] = None


class SearchRecord(BaseModel):
    search_id: str
    uid: str
    brand: str
    image_path: str
    fingerprint: Optional[str] = None
    client_ref: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ListingMirror(BaseModel):
    """Denormalized listing metadata; both fields are None when unresolved."""
    seller_uid: Optional[str] = None
    canonical_ref_path: Optional[str] = None


class MatchAudit(BaseModel):
    listing_id: str
    counterparty_id: str
    score: float
    search_id: Optional[str] = None
    created_at: Optional[datetime] = None


class InboxEntry(BaseModel):
    recipient_id: str
    listing_id: str
    score: float
    source_tag: str
    seller_uid: Optional[str] = None
    listing_ref: Optional[str] = None
    seen: bool = False
    created_at: Optional[datetime] = None
