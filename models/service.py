# models/service.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .review import ReviewOut

# services.price is NUMERIC(10,2)
MAX_PRICE = 99_999_999.99


def _reject_nul(value: str | None) -> str | None:
    # PostgreSQL text columns cannot store NUL
    if value is not None and "\x00" in value:
        raise ValueError("must not contain NUL characters")
    return value


# =========================================================
# Response shapes (what the frontend renders)
# =========================================================

class SellerSummary(BaseModel):
    """Seller block embedded in every listing card."""

    username: str
    avatar: str | None = None
    rating: float = 0.0


class ServiceOut(BaseModel):
    id: str
    title: str
    description: str
    price: float
    image: str = ""
    category: str
    seller: SellerSummary
    rating: float = 0.0
    # number of reviews; the card shows "(12)" next to the stars
    reviews: int = 0


class GalleryImage(BaseModel):
    url: str
    caption: str | None = None
    order: int = 0


class SellerDetail(BaseModel):
    id: int
    username: str
    name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    phone: str | None = None
    website: str | None = None
    years_experience: int | None = None
    rating: float = 0.0


class ServiceDetail(BaseModel):
    id: str
    title: str
    description: str
    price: float
    image: str = ""
    category: str
    rating: float = 0.0
    reviews_count: int = 0
    created_at: datetime | None = None
    gallery: list[GalleryImage] = []
    seller: SellerDetail
    reviews: list[ReviewOut] = []


class SellerStats(BaseModel):
    avg_rating: float = 0.0
    total_services: int = 0
    total_reviews: int = 0


class SellerProfile(BaseModel):
    id: int
    username: str
    name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    phone: str | None = None
    website: str | None = None
    years_experience: int | None = None
    member_since: datetime | None = None
    stats: SellerStats
    services: list[ServiceOut] = []


# =========================================================
# Request bodies
# =========================================================

class ServiceCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0, le=MAX_PRICE, allow_inf_nan=False)
    category: str = Field(..., min_length=1, max_length=100)
    image: str = Field("", max_length=500)

    @field_validator("title", "description", "category", "image")
    @classmethod
    def reject_nul(cls, value):
        return _reject_nul(value)


class ServiceUpdate(BaseModel):
    """Partial update: fields left out keep their stored value."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1)
    price: float | None = Field(None, gt=0, le=MAX_PRICE, allow_inf_nan=False)
    category: str | None = Field(None, min_length=1, max_length=100)
    image: str | None = Field(None, max_length=500)

    @field_validator("title", "description", "category", "image")
    @classmethod
    def reject_nul(cls, value):
        return _reject_nul(value)
