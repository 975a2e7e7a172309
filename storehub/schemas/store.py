"""
StoreHub Backend: Store Schemas
================================

What:  Pydantic models for validated store input and store output.
How:   `StoreFields` is what the validation layer produces from a raw form;
       the response models are built from ORM rows with from_attributes.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Input
# ══════════════════════════════════════════════════════════════════════════


class StoreFields(BaseModel):
    """
    Validated store values ready to be written.

    On a partial update only the fields present in `model_fields_set` are
    applied; everything else keeps its stored value.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    address: Optional[str] = None
    photo: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Output
# ══════════════════════════════════════════════════════════════════════════


class LocationResponse(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(description="[longitude, latitude]")
    address: Optional[str] = None


class AuthorSummary(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class StoreResponse(BaseModel):
    """Full representation of a store, as shown on list and detail pages."""
    id: uuid.UUID
    name: str
    slug: str
    description: str
    tags: List[str] = Field(default_factory=list)
    location: Optional[LocationResponse] = None
    photo: str
    author_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class StoreDetailResponse(StoreResponse):
    """Store with its author resolved (store detail page)."""
    author: AuthorSummary


class StoreSearchItem(StoreResponse):
    """A text search hit with its relevance score."""
    score: float = Field(description="Full-text relevance, higher is better")


class StoreNearItem(BaseModel):
    """Reduced projection returned by the proximity search."""
    slug: str
    name: str
    description: str
    location: Optional[LocationResponse] = None
    photo: str

    model_config = {"from_attributes": True}


class TagCount(BaseModel):
    """A tag in use and how many stores carry it."""
    tag: str
    count: int
