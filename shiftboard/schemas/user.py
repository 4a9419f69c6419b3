# shiftboard/schemas/user.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from shiftboard.models.user import UserRole
from shiftboard.utils.dates import iso_utc


class UserOut(BaseModel):
    id: int
    line_user_id: str = Field(..., serialization_alias="lineUserId")
    display_name: str = Field(..., serialization_alias="displayName")
    picture_url: Optional[str] = Field(None, serialization_alias="pictureUrl")
    role: UserRole
    is_active: bool = Field(..., serialization_alias="isActive")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    class Config:
        from_attributes = True

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> Optional[str]:
        return iso_utc(value)


def user_to_dict(user) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json", by_alias=True)


class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(None, alias="displayName", min_length=1, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = Field(None, alias="isActive")

    class Config:
        populate_by_name = True
