"""
Article model and Firestore conversion helpers
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ConfigDict

from app.models.base import load_document


class ArticleStatus(str, Enum):
    """Moderation status of a submitted article"""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class Article(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    author_email: Optional[str] = Field(None, alias="authorEmail")
    publisher: Optional[str] = None
    tags: Optional[list[str]] = Field(default_factory=list)
    status: Optional[str] = ArticleStatus.PENDING.value
    is_premium: Optional[bool] = Field(False, alias="isPremium")
    views: Optional[int] = 0
    decline_reason: Optional[str] = Field(None, alias="declineReason")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    reviewed_at: Optional[datetime] = Field(None, alias="reviewedAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


def firestore_article_to_model(doc: Dict[str, Any], doc_id: str) -> Article:
    return load_document(Article, doc, doc_id)
