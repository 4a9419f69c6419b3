# shiftboard/schemas/invitation.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class InvitationCreate(BaseModel):
    description: Optional[str] = Field(None, max_length=500)
    expires_at: datetime = Field(..., alias="expiresAt")

    class Config:
        populate_by_name = True
