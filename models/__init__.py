# models/__init__.py
from .common import ApiResponse, MessageOut
from .review import ReviewCreate, ReviewOut, ReviewUser
from .service import (
    GalleryImage,
    SellerDetail,
    SellerProfile,
    SellerStats,
    SellerSummary,
    ServiceCreate,
    ServiceDetail,
    ServiceOut,
    ServiceUpdate,
)
from .user import AuthPayload, AvatarOut, LoginRequest, ProfileUpdate, RegisterRequest, UserOut

__all__ = [
    "ApiResponse",
    "AuthPayload",
    "AvatarOut",
    "GalleryImage",
    "LoginRequest",
    "MessageOut",
    "ProfileUpdate",
    "RegisterRequest",
    "ReviewCreate",
    "ReviewOut",
    "ReviewUser",
    "SellerDetail",
    "SellerProfile",
    "SellerStats",
    "SellerSummary",
    "ServiceCreate",
    "ServiceDetail",
    "ServiceOut",
    "ServiceUpdate",
    "UserOut",
]
