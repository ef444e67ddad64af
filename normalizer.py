# normalizer.py
"""
Row <-> view-model conversion.

psycopg hands back flat dict rows (NUMERIC columns as Decimal); the frontend
wants nested objects with plain floats. Everything that leaves the API goes
through one of the *_from_row(s) helpers below.
"""
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel

from models import (
    GalleryImage,
    ReviewOut,
    ReviewUser,
    SellerDetail,
    SellerProfile,
    SellerStats,
    SellerSummary,
    ServiceDetail,
    ServiceOut,
    UserOut,
)

# Columns a service row may be written with
SERVICE_COLUMNS = ("title", "description", "price", "category", "image")
USER_PROFILE_FIELDS = ("username", "email", "name", "bio", "location", "phone", "website", "years_experience")


def to_float(value, default: float = 0.0) -> float:
    """Decimal / str / int / None -> float. Unparseable values fall back to default."""
    if value is None:
        return default
    if isinstance(value, float):
        return value
    try:
        return float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return default


def to_int(value, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(to_float(value, default))
        except (TypeError, ValueError):
            return default


def round_rating(value) -> float:
    return round(to_float(value), 1)


# =========================================================
# Users
# =========================================================

def user_from_row(row: dict) -> UserOut:
    # password_hash is deliberately never copied
    return UserOut(
        id=str(row["id"]),
        email=row["email"],
        username=row["username"],
        name=row.get("name"),
        avatar=row.get("avatar"),
        bio=row.get("bio"),
        location=row.get("location"),
        phone=row.get("phone"),
        website=row.get("website"),
        years_experience=row.get("years_experience"),
        created_at=row.get("created_at"),
    )


# =========================================================
# Services
# =========================================================

def service_from_row(row: dict, seller: dict | None = None) -> ServiceOut:
    """
    List-card shape.

    `row` is a services row joined with seller_username / seller_avatar.
    When the seller is already known (seller profile page) it can be passed
    in instead of being read from the joined columns.
    """
    rating = to_float(row.get("rating"))
    if seller is not None:
        seller_username = seller["username"]
        seller_avatar = seller.get("avatar")
    else:
        seller_username = row["seller_username"]
        seller_avatar = row.get("seller_avatar")

    return ServiceOut(
        id=str(row["id"]),
        title=row["title"],
        description=row["description"],
        price=to_float(row["price"]),
        image=row.get("image") or "",
        category=row["category"],
        seller=SellerSummary(username=seller_username, avatar=seller_avatar, rating=rating),
        rating=rating,
        reviews=to_int(row.get("reviews_count")),
    )


def gallery_from_rows(rows: list[dict]) -> list[GalleryImage]:
    """Ordered by display_order; equal positions keep insertion (id) order."""
    ordered = sorted(rows, key=lambda r: (to_int(r.get("display_order")), to_int(r.get("id"))))
    return [
        GalleryImage(url=r["image_url"], caption=r.get("caption"), order=to_int(r.get("display_order")))
        for r in ordered
    ]


def review_from_row(row: dict) -> ReviewOut:
    return ReviewOut(
        id=row["id"],
        rating=to_int(row["rating"]),
        comment=row.get("comment"),
        created_at=row.get("created_at"),
        user=ReviewUser(
            username=row["user_username"],
            name=row.get("user_name"),
            avatar=row.get("user_avatar"),
        ),
    )


def reviews_from_rows(rows: list[dict]) -> list[ReviewOut]:
    return [review_from_row(r) for r in rows]


def service_detail_from_rows(row: dict, gallery_rows: list[dict], review_rows: list[dict]) -> ServiceDetail:
    """
    Detail-page shape.

    `row` is the service joined with the seller's profile columns
    (seller_id, seller_username, seller_name, seller_avatar, seller_bio, ...).
    """
    rating = to_float(row.get("rating"))
    seller = SellerDetail(
        id=row["seller_id"],
        username=row["seller_username"],
        name=row.get("seller_name"),
        avatar=row.get("seller_avatar"),
        bio=row.get("seller_bio"),
        location=row.get("seller_location"),
        phone=row.get("seller_phone"),
        website=row.get("seller_website"),
        years_experience=row.get("seller_years_experience"),
        rating=rating,
    )
    return ServiceDetail(
        id=str(row["id"]),
        title=row["title"],
        description=row["description"],
        price=to_float(row["price"]),
        image=row.get("image") or "",
        category=row["category"],
        rating=rating,
        reviews_count=to_int(row.get("reviews_count")),
        created_at=row.get("created_at"),
        gallery=gallery_from_rows(gallery_rows),
        seller=seller,
        reviews=reviews_from_rows(review_rows),
    )


def seller_profile_from_rows(user_row: dict, stats_row: dict | None, service_rows: list[dict]) -> SellerProfile:
    stats_row = stats_row or {}
    return SellerProfile(
        id=user_row["id"],
        username=user_row["username"],
        name=user_row.get("name"),
        avatar=user_row.get("avatar"),
        bio=user_row.get("bio"),
        location=user_row.get("location"),
        phone=user_row.get("phone"),
        website=user_row.get("website"),
        years_experience=user_row.get("years_experience"),
        member_since=user_row.get("created_at"),
        stats=SellerStats(
            avg_rating=round_rating(stats_row.get("avg_rating")),
            total_services=to_int(stats_row.get("total_services")),
            total_reviews=to_int(stats_row.get("total_reviews")),
        ),
        services=[service_from_row(r, seller=user_row) for r in service_rows],
    )


# =========================================================
# Request DTO -> flat columns
# =========================================================

def service_to_row(payload: BaseModel, partial: bool = False) -> dict:
    """
    Flatten a ServiceCreate / ServiceUpdate into {column: value}.

    With partial=True only the fields the client actually sent are kept,
    so an UPDATE touches nothing else.
    """
    data = payload.model_dump(exclude_unset=partial)
    if partial:
        data = {k: v for k, v in data.items() if v is not None}
    return {k: data[k] for k in SERVICE_COLUMNS if k in data}


def profile_to_row(payload: BaseModel) -> dict:
    """Sent fields only. An explicit null clears optional fields but never username/email."""
    data = payload.model_dump(exclude_unset=True)
    row = {k: data[k] for k in USER_PROFILE_FIELDS if k in data}
    for required in ("username", "email"):
        if row.get(required, "") is None:
            del row[required]
    return row
