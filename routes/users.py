import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from models import ApiResponse, AvatarOut, ProfileUpdate, UserOut
from normalizer import profile_to_row, user_from_row
from repository import DuplicateUserError, MarketplaceRepository, get_repository
from routes.auth import get_current_user
from utils import is_image_upload, save_avatar_file

logger = logging.getLogger(__name__)

router = APIRouter()


# =========================================================
# 1. Update my profile
# =========================================================
@router.put("/profile", response_model=ApiResponse[UserOut])
async def update_profile(
    payload: ProfileUpdate,
    user: dict = Depends(get_current_user),
    repo: MarketplaceRepository = Depends(get_repository),
):
    """Only the fields present in the body are written."""
    fields = profile_to_row(payload)

    # Username / email must stay unique across accounts
    if "email" in fields or "username" in fields:
        conflict = await repo.find_user_conflict(
            fields.get("email", ""), fields.get("username", ""), exclude_id=user["id"]
        )
        if conflict:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"This {conflict} is already in use")

    try:
        updated = await repo.update_profile(user["id"], fields)
    except DuplicateUserError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"This {e.field} is already in use")

    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return ApiResponse(data=user_from_row(updated))


# =========================================================
# 2. Upload avatar (multipart field "avatar")
# =========================================================
@router.post("/avatar", response_model=ApiResponse[AvatarOut])
async def upload_avatar(
    avatar: UploadFile = File(...),
    user: dict = Depends(get_current_user),
    repo: MarketplaceRepository = Depends(get_repository),
):
    if not is_image_upload(avatar):
        raise HTTPException(status_code=400, detail="Avatar must be an image (jpg, png, gif, webp or svg)")

    url = await save_avatar_file(avatar, user["id"])
    await repo.update_avatar(user["id"], url)
    logger.info("User %s uploaded a new avatar", user["id"])
    return ApiResponse(data=AvatarOut(url=url))
