"""
Publisher model and Firestore conversion helpers

Collection: publishers/
Document ID: SHA-256 of the normalized name so that the store itself
rejects a second publisher with the same name.
"""

import hashlib
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import load_document


class Publisher(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = Field(None, alias="displayName")
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


def publisher_doc_id(normalized_name: str) -> str:
    """Firestore document ID for a normalized publisher name.

    A hex digest is always a valid document ID and differs for every name.
    """
    return hashlib.sha256(normalized_name.encode("utf-8")).hexdigest()


def firestore_publisher_to_model(doc: Dict[str, Any], doc_id: str) -> Publisher:
    return load_document(Publisher, doc, doc_id)
