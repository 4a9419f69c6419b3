# shiftboard/schemas/auth.py

from typing import Optional

from pydantic import BaseModel, Field


class LoginStart(BaseModel):
    """POST /api/auth/line/login body; both fields optional."""
    invite_token: Optional[str] = Field(None, alias="inviteToken")
    redirect_url: Optional[str] = Field(None, alias="redirectUrl")

    class Config:
        populate_by_name = True
