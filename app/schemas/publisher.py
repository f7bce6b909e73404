"""
Publisher request schemas
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PublisherCreate(BaseModel):
    name: Optional[str] = None
    logo_url: Optional[str] = Field(None, alias="logoUrl")

    # Any other publisher details are stored as given
    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "name": "The Daily",
                "logoUrl": "https://example.com/the-daily.png",
            }
        },
    )
