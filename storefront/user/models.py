from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserCreateIn(BaseModel):
    name: str = Field(..., min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=4, max_length=128)
    gender: Optional[str] = Field(default=None, max_length=16)
    about: Optional[str] = Field(default=None, max_length=1000)
    image_name: Optional[str] = Field(default=None, max_length=1024)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class UserUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=64)
    password: Optional[str] = Field(default=None, min_length=4, max_length=128)
    gender: Optional[str] = Field(default=None, max_length=16)
    about: Optional[str] = Field(default=None, max_length=1000)
    image_name: Optional[str] = Field(default=None, max_length=1024)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    email: str
    gender: Optional[str] = None
    about: Optional[str] = None
    image_name: Optional[str] = None
    provider: str
    roles: List[str] = []
    created_at: Optional[datetime] = None
