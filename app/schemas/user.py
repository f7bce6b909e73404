"""
User request/response schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.user import User
from app.schemas.common import InsertResponse


class UserSyncRequest(BaseModel):
    """Payload sent by the client after every successful sign-in."""

    email: Optional[str] = None
    name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "email": "reader@example.com",
                "name": "Jane Reader",
                "photoURL": "https://example.com/jane.png",
            }
        },
    )


class UserSyncResponse(InsertResponse):
    last_login: datetime = Field(..., alias="lastLogin")


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")

    model_config = ConfigDict(populate_by_name=True)


class RoleUpdate(BaseModel):
    role: Optional[str] = None


class RoleResponse(BaseModel):
    role: str


class UserStatsResponse(BaseModel):
    total_users: int = Field(..., alias="totalUsers")
    normal_users: int = Field(..., alias="normalUsers")
    premium_users: int = Field(..., alias="premiumUsers")

    model_config = ConfigDict(populate_by_name=True)


class UserListResponse(BaseModel):
    users: list[User]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)
