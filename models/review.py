# models/review.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReviewUser(BaseModel):
    username: str
    name: str | None = None
    avatar: str | None = None


class ReviewOut(BaseModel):
    id: int
    rating: int
    comment: str | None = None
    created_at: datetime | None = None
    user: ReviewUser


class ReviewCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)
