from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    """Shaped user: the stored ``image`` is exposed as ``imageBase64``."""

    id: int
    name: str
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")

    model_config = ConfigDict(populate_by_name=True)


class UserRecord(BaseModel):
    """User as stored, returned unshaped by the update endpoint."""

    id: int
    name: str
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserPage(BaseModel):
    users: List[UserOut]
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


class UserSummary(BaseModel):
    id: int
    name: str


class ImageUpdated(BaseModel):
    message: str
    user: UserSummary


class ErrorResponse(BaseModel):
    error: str
