# models/user.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


class UserOut(BaseModel):
    # id is a string on the wire, like service ids
    id: str
    email: str
    username: str
    name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    phone: str | None = None
    website: str | None = None
    years_experience: int | None = None
    created_at: datetime | None = None


class AuthPayload(BaseModel):
    user: UserOut
    token: str


class AvatarOut(BaseModel):
    url: str


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    username: str = Field(..., min_length=3, max_length=100, pattern=USERNAME_PATTERN)
    name: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Every field is optional; only the ones sent are written."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str | None = Field(None, min_length=3, max_length=100, pattern=USERNAME_PATTERN)
    email: EmailStr | None = None
    name: str | None = Field(None, max_length=255)
    bio: str | None = None
    location: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    website: str | None = Field(None, max_length=255)
    years_experience: int | None = Field(None, ge=0, le=100)
