from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.user.models import UserOut


class JwtRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class RefreshTokenOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    token: str
    expiry_date: datetime


class JwtResponse(BaseModel):
    token: str
    user: UserOut
    refresh_token: Optional[RefreshTokenOut] = None
