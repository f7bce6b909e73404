"""
Article request/response schemas
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.article import Article


class ArticleCreateSchema(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    author_email: Optional[str] = Field(None, alias="authorEmail")
    publisher: Optional[str] = None
    tags: Optional[list[str]] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "title": "Budget vote delayed",
                "description": "Parliament postponed the vote until next week.",
                "authorEmail": "writer@example.com",
                "publisher": "the daily",
                "tags": ["politics"],
                "image": "https://example.com/budget.jpg",
            }
        },
    )


class DeclineRequest(BaseModel):
    reason: Optional[str] = None


class PremiumRequest(BaseModel):
    is_premium: Optional[bool] = Field(None, alias="isPremium")

    model_config = ConfigDict(populate_by_name=True)


class ArticleCreateResponse(BaseModel):
    message: str
    inserted_id: str = Field(..., alias="insertedId")
    article: Article

    model_config = ConfigDict(populate_by_name=True)


class ArticleListResponse(BaseModel):
    articles: list[Article]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)
