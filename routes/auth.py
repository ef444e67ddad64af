import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from models import ApiResponse, AuthPayload, LoginRequest, RegisterRequest, UserOut
from normalizer import user_from_row
from repository import DuplicateUserError, MarketplaceRepository, get_repository
from security import create_access_token, decode_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

# --- 1. Router ---
router = APIRouter()

# auto_error=False: a missing header becomes our own 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# --- 2. Core dependency: who is calling ---
async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    repo: MarketplaceRepository = Depends(get_repository),
) -> dict:
    """
    Resolve the bearer token to a user row, or raise 401.

    1. The Authorization header must carry "Bearer <jwt>".
    2. The JWT must be valid and not expired.
    3. The user it names must still exist (a token alone proves nothing
       about the account being alive).
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")

    user = await repo.get_user_by_id(user_id)
    if not user:
        raise _unauthorized("User no longer exists")

    return user


# --- 3. Register ---
@router.post("/register", response_model=ApiResponse[AuthPayload], status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, repo: MarketplaceRepository = Depends(get_repository)):
    # Step 1: refuse an email or username that is already taken
    conflict = await repo.find_user_conflict(payload.email, payload.username)
    if conflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"This {conflict} is already registered")

    # Step 2: store the bcrypt hash, never the password
    avatar = f"https://api.dicebear.com/7.x/avataaars/svg?seed={payload.username}"
    try:
        user = await repo.create_user(
            email=payload.email,
            username=payload.username,
            password_hash=hash_password(payload.password),
            name=payload.name,
            avatar=avatar,
        )
    except DuplicateUserError as e:
        # The unique constraint caught a concurrent registration
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"This {e.field} is already registered")

    logger.info("Registered user %s (id=%s)", user["username"], user["id"])
    return ApiResponse(data=AuthPayload(user=user_from_row(user), token=create_access_token(user["id"])))


# --- 4. Login ---
@router.post("/login", response_model=ApiResponse[AuthPayload])
async def login(payload: LoginRequest, repo: MarketplaceRepository = Depends(get_repository)):
    user = await repo.get_user_by_email(payload.email)

    # Same message for unknown email and wrong password
    if not user or not verify_password(payload.password, user.get("password_hash")):
        raise _unauthorized("Invalid email or password")

    return ApiResponse(data=AuthPayload(user=user_from_row(user), token=create_access_token(user["id"])))


# --- 5. Current user ---
@router.get("/me", response_model=ApiResponse[UserOut])
async def me(user: dict = Depends(get_current_user)):
    """Used by the client at startup to revalidate a stored token."""
    return ApiResponse(data=user_from_row(user))
