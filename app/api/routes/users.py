"""
User registry API endpoints

Users are synced on every sign-in rather than registered: the client posts
its profile after authenticating and the first call creates the document.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import settings
from app.dependencies import get_firebase_service
from app.models.base import coerce_model_fields
from app.models.user import DEFAULT_ROLE, User, UserRole, firestore_user_to_model, role_of
from app.schemas.common import UpdateResponse
from app.schemas.user import (
    ProfileUpdate,
    RoleResponse,
    RoleUpdate,
    UserListResponse,
    UserStatsResponse,
    UserSyncRequest,
    UserSyncResponse,
)
from app.services.firebase_service import FirebaseService
from app.utils.normalize import clean_str, normalize_key, utc_now
from app.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, page_offset, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _invalid_fields(exc: ValidationError) -> HTTPException:
    fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid value for: {', '.join(fields)}",
    )


@router.post("", response_model=UserSyncResponse, status_code=status.HTTP_201_CREATED)
async def sync_user(
    payload: UserSyncRequest,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """
    Create the user on first login, otherwise touch lastLogin.

    No uniqueness constraint exists on email: two concurrent first logins for
    the same address can both insert.
    """
    email = clean_str(payload.email)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required"
        )

    collection = settings.USERS_COLLECTION
    last_login = utc_now()
    existing = await firebase.find_document(collection, "email", email)

    if existing:
        doc_id, _ = existing
        await firebase.update_document(collection, doc_id, {"lastLogin": last_login})
        body = UserSyncResponse(
            message="User already exists — login time updated",
            inserted=False,
            last_login=last_login,
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    user = payload.model_dump(by_alias=True, exclude_none=True)
    try:
        coerce_model_fields(User, user)
    except ValidationError as exc:
        raise _invalid_fields(exc) from None
    user["email"] = email
    user["role"] = normalize_key(payload.role) or DEFAULT_ROLE
    user["createdAt"] = last_login
    user["lastLogin"] = last_login

    inserted_id = await firebase.add_document(collection, user)
    logger.info("Created user %s for %s", inserted_id, email)
    return UserSyncResponse(
        message="User added successfully",
        inserted=True,
        inserted_id=inserted_id,
        last_login=last_login,
    )


@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[str] = None,
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """List users, optionally filtered by role (case-insensitive)."""
    filters = []
    role = normalize_key(role)
    if role:
        filters.append(("role", "==", role))

    docs, total = await firebase.query_collection(
        settings.USERS_COLLECTION,
        filters=filters,
        limit=limit,
        offset=page_offset(page, limit),
        get_total_count=True,
    )
    return UserListResponse(
        users=[firestore_user_to_model(data, doc_id) for doc_id, data in docs],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get("/role", response_model=RoleResponse)
async def get_user_role(
    email: Optional[str] = None,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    email = clean_str(email)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required"
        )
    found = await firebase.find_document(settings.USERS_COLLECTION, "email", email)
    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
        )
    _, data = found
    return RoleResponse(role=role_of(data))


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(firebase: FirebaseService = Depends(get_firebase_service)):
    """
    Count all users, regular users and premium users.

    Users without a role field count as regular. Firestore cannot match a
    missing field, so those are derived as total minus every document that
    has a string role.
    """
    collection = settings.USERS_COLLECTION
    total = await firebase.count_documents(collection)
    with_role = await firebase.count_documents(collection, [("role", ">=", "")])
    regular = await firebase.count_documents(
        collection, [("role", "==", UserRole.USER.value)])
    premium = await firebase.count_documents(
        collection, [("role", "==", UserRole.PREMIUM.value)])

    return UserStatsResponse(
        total_users=total,
        normal_users=regular + (total - with_role),
        premium_users=premium,
    )


@router.patch("/{key}", response_model=UpdateResponse)
async def update_user(
    key: str,
    payload: dict,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """
    PATCH /users/{email} updates the profile, PATCH /users/{id} sets the role.

    Both share one path; a segment containing '@' is treated as an email.
    """
    try:
        if "@" in key:
            body = ProfileUpdate.model_validate(payload)
        else:
            body = RoleUpdate.model_validate(payload)
    except ValidationError as exc:
        raise _invalid_fields(exc) from None

    if isinstance(body, ProfileUpdate):
        return await _update_profile(key, body, firebase)
    return await _update_role(key, body, firebase)


async def _update_profile(
    email: str, payload: ProfileUpdate, firebase: FirebaseService
) -> UpdateResponse:
    updates = {}
    name = clean_str(payload.name)
    if name:
        updates["name"] = name
    photo_url = clean_str(payload.photo_url)
    if photo_url:
        updates["photoURL"] = photo_url
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to update: provide name or photoURL",
        )

    collection = settings.USERS_COLLECTION
    found = await firebase.find_document(collection, "email", email)
    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
        )
    doc_id, _ = found
    updates["updatedAt"] = utc_now()
    await firebase.update_document(collection, doc_id, updates)
    return UpdateResponse(message="Profile updated")


async def _update_role(
    user_id: str, payload: RoleUpdate, firebase: FirebaseService
) -> UpdateResponse:
    role = normalize_key(payload.role)
    if not role:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Role is required"
        )

    collection = settings.USERS_COLLECTION
    current = await firebase.get_document(collection, user_id)
    # Unchanged role and missing user are reported identically
    if current is None or current.get("role") == role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found or role unchanged",
        )
    if not await firebase.update_document(collection, user_id, {"role": role}):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found or role unchanged",
        )
    logger.info("Role of user %s set to %s", user_id, role)
    return UpdateResponse(message=f"Role updated to {role}")
