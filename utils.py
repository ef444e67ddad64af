import os
from datetime import datetime

import aiofiles  # async file IO, so a slow disk never blocks the event loop
from fastapi import UploadFile

from config import settings

# --- 1. Upload paths ---
UPLOAD_ROOT = settings.upload_root  # served under /uploads
FOLDER_AVATARS = "avatars"          # user avatars

ALLOWED_AVATAR_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"}
CHUNK_SIZE = 1024


def setup_upload_directories():
    """
    Create the upload folders at startup.
    exist_ok=True: already existing folders are left alone.
    """
    os.makedirs(UPLOAD_ROOT, exist_ok=True)
    os.makedirs(os.path.join(UPLOAD_ROOT, FOLDER_AVATARS), exist_ok=True)


def is_image_upload(file: UploadFile) -> bool:
    """Accept only image/* uploads with a known image extension."""
    if not file or not file.filename:
        return False
    content_type = (file.content_type or "").lower()
    ext = os.path.splitext(file.filename)[1].lower()
    return content_type.startswith("image/") and ext in ALLOWED_AVATAR_EXTENSIONS


async def save_avatar_file(file: UploadFile, user_id: int) -> str:
    """
    Store a user avatar.

    - Every avatar lives in <UPLOAD_ROOT>/avatars/
    - The file name carries the user id and a timestamp, so a new upload
      never overwrites an old one that a cached page may still show.

    Returns the public URL path, e.g. /uploads/avatars/user_1_20240105103000123456.jpg
    """
    target_dir = os.path.join(UPLOAD_ROOT, FOLDER_AVATARS)
    os.makedirs(target_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
    ext = os.path.splitext(file.filename)[1].lower()
    new_filename = f"user_{user_id}_{timestamp}{ext}"

    file_path = os.path.join(target_dir, new_filename)

    # Chunked write: large files never sit fully in memory
    async with aiofiles.open(file_path, "wb") as out_file:
        while content := await file.read(CHUNK_SIZE):
            await out_file.write(content)

    return f"/uploads/{FOLDER_AVATARS}/{new_filename}"
