"""
Shared response schemas
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    message: str


class UpdateResponse(BaseModel):
    message: str


class InsertResponse(BaseModel):
    message: str
    inserted: bool
    inserted_id: Optional[str] = Field(None, alias="insertedId")

    model_config = ConfigDict(populate_by_name=True)
