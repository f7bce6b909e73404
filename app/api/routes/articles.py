"""Articles API routes

Submission, moderation (approve / decline / premium) and public browsing.
Moderation endpoints are the guarded status transitions; PATCH /articles/{id}
is a raw field merge kept as a separate escape hatch.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from app.config import settings
from app.dependencies import get_firebase_service
from app.models.article import Article, ArticleStatus, firestore_article_to_model
from app.models.base import coerce_model_fields
from app.schemas.article import (
    ArticleCreateResponse,
    ArticleCreateSchema,
    ArticleListResponse,
    DeclineRequest,
    PremiumRequest,
)
from app.schemas.common import MessageResponse, UpdateResponse
from app.services.firebase_service import FirebaseService
from app.utils.normalize import clean_str, dedupe, normalize_key, split_csv, utc_now
from app.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, page_offset, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/articles", tags=["Articles"])

DEFAULT_TRENDING_LIMIT = 6
# Firestore caps the value list of an array-contains-any filter
MAX_TAG_FILTER = 30
# Approved articles scanned per round trip by the title search
APPROVED_SCAN_BATCH = 200
_STATUSES = {s.value for s in ArticleStatus}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Article not found")


def _check_article_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Reject values that would not load back as an Article (400)."""
    try:
        return coerce_model_fields(Article, data)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid value for: {', '.join(fields)}",
        ) from None


def _normalize_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Trim title/description and normalize authorEmail when present."""
    for field in ("title", "description"):
        if field in data:
            data[field] = clean_str(data[field])
    if "authorEmail" in data:
        data["authorEmail"] = normalize_key(data["authorEmail"])
    return data


# ============================================
# Browsing
# ============================================


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """List every article regardless of status, with pagination"""
    docs, total = await firebase.query_collection(
        settings.ARTICLES_COLLECTION,
        limit=limit,
        offset=page_offset(page, limit),
        get_total_count=True,
    )
    return ArticleListResponse(
        articles=[firestore_article_to_model(data, doc_id) for doc_id, data in docs],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get("/user", response_model=list[Article])
async def list_user_articles(
    email: Optional[str] = None,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """An author's own articles, newest first"""
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required"
        )
    docs, _ = await firebase.query_collection(
        settings.ARTICLES_COLLECTION,
        filters=[("authorEmail", "==", email)],
        order_by="createdAt",
        direction="DESCENDING",
    )
    return [firestore_article_to_model(data, doc_id) for doc_id, data in docs]


@router.get("/approved", response_model=list[Article])
async def list_approved_articles(
    search: Optional[str] = None,
    publisher: Optional[str] = None,
    tags: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """
    Approved articles, optionally narrowed by:

    - **search**: case-insensitive substring of the title
    - **publisher**: exact publisher name
    - **tags**: comma-separated list; an article matches if it has any of them
    - **limit**: maximum number of articles returned
    """
    filters = [("status", "==", ArticleStatus.APPROVED.value)]
    if publisher:
        filters.append(("publisher", "==", publisher))
    tag_list = dedupe(split_csv(tags))
    if len(tag_list) > MAX_TAG_FILTER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_TAG_FILTER} tags can be filtered on",
        )
    if tag_list:
        filters.append(("tags", "array_contains_any", tag_list))

    needle = (search or "").strip().lower()
    if not needle:
        docs, _ = await firebase.query_collection(
            settings.ARTICLES_COLLECTION, filters=filters, limit=limit)
        return [firestore_article_to_model(data, doc_id) for doc_id, data in docs]

    # Firestore has no substring matching, so the title search runs here
    # one batch at a time
    articles = []
    offset = 0
    while limit is None or len(articles) < limit:
        docs, _ = await firebase.query_collection(
            settings.ARTICLES_COLLECTION,
            filters=filters,
            limit=APPROVED_SCAN_BATCH,
            offset=offset,
        )
        for doc_id, data in docs:
            if needle in str(data.get("title") or "").lower():
                articles.append(firestore_article_to_model(data, doc_id))
        if len(docs) < APPROVED_SCAN_BATCH:
            break
        offset += len(docs)
    return articles[:limit] if limit else articles


@router.get("/trending", response_model=list[Article])
async def list_trending_articles(
    limit: int = Query(DEFAULT_TRENDING_LIMIT, ge=1),
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """Most viewed approved articles"""
    docs, _ = await firebase.query_collection(
        settings.ARTICLES_COLLECTION,
        filters=[("status", "==", ArticleStatus.APPROVED.value)],
        order_by="views",
        direction="DESCENDING",
        limit=limit,
    )
    return [firestore_article_to_model(data, doc_id) for doc_id, data in docs]


@router.get("/{article_id}", response_model=Article)
async def get_article(
    article_id: str,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """Fetch one article with its publisher's logo attached as publisherLogo."""
    data = await firebase.get_document(settings.ARTICLES_COLLECTION, article_id)
    if data is None:
        raise _not_found()

    article = firestore_article_to_model(data, article_id)
    if article.publisher:
        found = await firebase.find_document(
            settings.PUBLISHERS_COLLECTION, "name", article.publisher)
        # A dangling publisher reference just means no logo
        if found and found[1].get("logoUrl"):
            article = firestore_article_to_model(
                {**data, "publisherLogo": found[1]["logoUrl"]}, article_id)
    return article


# ============================================
# Views
# ============================================


@router.patch("/views/{article_id}", response_model=UpdateResponse)
async def increment_views(
    article_id: str,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    if not await firebase.increment_field(settings.ARTICLES_COLLECTION, article_id, "views"):
        raise _not_found()
    return UpdateResponse(message="View count incremented")


# ============================================
# Submission
# ============================================


@router.post("", response_model=ArticleCreateResponse, status_code=status.HTTP_201_CREATED)
async def submit_article(
    payload: ArticleCreateSchema,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """Submit an article for review. It starts out pending."""
    article = _normalize_fields(payload.model_dump(by_alias=True, exclude_none=True))
    _check_article_fields(article)
    missing = [f for f in ("title", "description", "authorEmail") if not article.get(f)]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    now = utc_now()
    article["tags"] = dedupe(t.strip() for t in payload.tags or [] if t.strip())
    article["status"] = ArticleStatus.PENDING.value
    article["isPremium"] = False
    article["views"] = 0
    article["createdAt"] = now
    article["updatedAt"] = now

    inserted_id = await firebase.add_document(settings.ARTICLES_COLLECTION, article)
    logger.info("Article %s submitted by %s", inserted_id, article["authorEmail"])
    return ArticleCreateResponse(
        message="Article submitted for review",
        inserted_id=inserted_id,
        article=firestore_article_to_model(article, inserted_id),
    )


# ============================================
# Moderation
# ============================================


@router.patch("/approve/{article_id}", response_model=UpdateResponse)
async def approve_article(
    article_id: str,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """Approve an article. Its view counter starts again from zero."""
    updated = await firebase.update_document(
        settings.ARTICLES_COLLECTION,
        article_id,
        {
            "status": ArticleStatus.APPROVED.value,
            "reviewedAt": utc_now(),
            "views": 0,
        },
    )
    if not updated:
        raise _not_found()
    logger.info("Article %s approved", article_id)
    return UpdateResponse(message="Article approved")


@router.patch("/decline/{article_id}", response_model=UpdateResponse)
async def decline_article(
    article_id: str,
    payload: DeclineRequest,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    reason = clean_str(payload.reason)
    if not reason:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Decline reason is required"
        )
    updated = await firebase.update_document(
        settings.ARTICLES_COLLECTION,
        article_id,
        {
            "status": ArticleStatus.DECLINED.value,
            "declineReason": reason,
            "reviewedAt": utc_now(),
        },
    )
    if not updated:
        raise _not_found()
    logger.info("Article %s declined: %s", article_id, reason)
    return UpdateResponse(message="Article declined")


@router.patch("/premium/{article_id}", response_model=UpdateResponse)
async def set_premium(
    article_id: str,
    payload: PremiumRequest,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    if payload.is_premium is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="isPremium must be a boolean"
        )
    updated = await firebase.update_document(
        settings.ARTICLES_COLLECTION, article_id, {"isPremium": payload.is_premium})
    if not updated:
        raise _not_found()
    logger.info("Article %s premium flag set to %s", article_id, payload.is_premium)
    return UpdateResponse(message="Premium status updated")


# ============================================
# Raw update / delete
# ============================================


@router.patch("/{article_id}", response_model=UpdateResponse)
async def update_article(
    article_id: str,
    payload: dict,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """
    Merge arbitrary fields into the article.

    This can overwrite status, views or isPremium directly, bypassing the
    moderation endpoints above. Values must still fit the article's field
    types, and field names must be valid Firestore field paths.
    """
    updates = _normalize_fields(dict(payload))
    updates.pop("id", None)
    _check_article_fields(updates)
    if "status" in updates and updates["status"] not in _STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"status must be one of: {', '.join(sorted(_STATUSES))}",
        )
    updates["updatedAt"] = utc_now()
    if not await firebase.update_document(settings.ARTICLES_COLLECTION, article_id, updates):
        raise _not_found()
    return UpdateResponse(message="Article updated")


@router.delete("/{article_id}", response_model=MessageResponse)
async def delete_article(
    article_id: str,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    if not await firebase.delete_document(settings.ARTICLES_COLLECTION, article_id):
        raise _not_found()
    logger.info("Article %s deleted", article_id)
    return MessageResponse(message="Article deleted")
