"""
User model for the Newspaper Backend

Collection: users/
Document ID: auto-generated
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import load_document


class UserRole(str, Enum):
    """Well-known roles. Admins may store other role strings."""

    USER = "user"
    PREMIUM = "premium"
    ADMIN = "admin"


DEFAULT_ROLE = UserRole.USER.value


class User(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_login: Optional[datetime] = Field(None, alias="lastLogin")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    # Login-sync stores the client payload as-is
    model_config = ConfigDict(populate_by_name=True, extra="allow")


def firestore_user_to_model(doc: Dict[str, Any], doc_id: str) -> User:
    return load_document(User, doc, doc_id)


def role_of(doc: Dict[str, Any]) -> str:
    """Stored role, falling back to the default when the field is absent."""
    return doc.get("role") or DEFAULT_ROLE
