import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from models import (
    ApiResponse,
    MessageOut,
    ReviewCreate,
    ReviewOut,
    SellerProfile,
    ServiceCreate,
    ServiceDetail,
    ServiceOut,
    ServiceUpdate,
)
from normalizer import (
    review_from_row,
    seller_profile_from_rows,
    service_detail_from_rows,
    service_from_row,
    service_to_row,
)
from query_builder import InvalidFilterError, parse_filters
from repository import MarketplaceRepository, get_repository
from routes.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

# PostgreSQL INT upper bound; larger ids can never exist
MAX_ID = 2_147_483_647


async def _require_owner(repo: MarketplaceRepository, service_id: int, user: dict) -> None:
    """404 when the service is gone, 403 when it belongs to someone else."""
    owner_id = await repo.get_service_owner(service_id)
    if owner_id is None:
        raise HTTPException(status_code=404, detail="Service not found")
    if owner_id != user["id"]:
        raise HTTPException(status_code=403, detail="You can only modify your own services")


# =========================================================
# 1. Search / list
# =========================================================
@router.get("", response_model=ApiResponse[list[ServiceOut]])
async def list_services(
    # Raw strings on purpose: validation errors must read like
    # "minPrice must be a number", not a generic 422
    q: str | None = Query(None),
    category: str | None = Query(None),
    min_price: str | None = Query(None, alias="minPrice"),
    max_price: str | None = Query(None, alias="maxPrice"),
    rating: str | None = Query(None),
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    repo: MarketplaceRepository = Depends(get_repository),
):
    try:
        filters = parse_filters(
            q=q,
            category=category,
            min_price=min_price,
            max_price=max_price,
            rating=rating,
            limit=limit,
            offset=offset,
        )
    except InvalidFilterError as e:
        raise HTTPException(status_code=400, detail=str(e))

    rows = await repo.search_services(filters)
    return ApiResponse(data=[service_from_row(r) for r in rows])


# =========================================================
# 2. Seller profile (declared before /{service_id})
# =========================================================
@router.get("/seller/{username}", response_model=ApiResponse[SellerProfile])
async def get_seller(username: str, repo: MarketplaceRepository = Depends(get_repository)):
    seller = await repo.get_seller_by_username(username)
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")

    stats = await repo.get_seller_stats(seller["id"])
    services = await repo.get_seller_services(seller["id"])
    return ApiResponse(data=seller_profile_from_rows(seller, stats, services))


# =========================================================
# 3. Service detail (gallery + seller card + reviews)
# =========================================================
@router.get("/{service_id}", response_model=ApiResponse[ServiceDetail])
async def get_service(
    service_id: int = Path(..., ge=1, le=MAX_ID),
    repo: MarketplaceRepository = Depends(get_repository),
):
    row = await repo.get_service(service_id)
    if not row:
        raise HTTPException(status_code=404, detail="Service not found")

    gallery = await repo.get_service_gallery(service_id)
    reviews = await repo.get_service_reviews(service_id)
    return ApiResponse(data=service_detail_from_rows(row, gallery, reviews))


# =========================================================
# 4. Create / update / delete (owner only)
# =========================================================
@router.post("", response_model=ApiResponse[ServiceOut], status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    user: dict = Depends(get_current_user),
    repo: MarketplaceRepository = Depends(get_repository),
):
    # The seller is always the caller, never a field of the body
    row = await repo.create_service(user["id"], service_to_row(payload))
    logger.info("User %s created service %s", user["id"], row["id"])
    return ApiResponse(data=service_from_row(row))


@router.put("/{service_id}", response_model=ApiResponse[ServiceOut])
async def update_service(
    payload: ServiceUpdate,
    service_id: int = Path(..., ge=1, le=MAX_ID),
    user: dict = Depends(get_current_user),
    repo: MarketplaceRepository = Depends(get_repository),
):
    await _require_owner(repo, service_id, user)

    row = await repo.update_service(service_id, service_to_row(payload, partial=True))
    if not row:
        raise HTTPException(status_code=404, detail="Service not found")
    return ApiResponse(data=service_from_row(row))


@router.delete("/{service_id}", response_model=ApiResponse[MessageOut])
async def delete_service(
    service_id: int = Path(..., ge=1, le=MAX_ID),
    user: dict = Depends(get_current_user),
    repo: MarketplaceRepository = Depends(get_repository),
):
    await _require_owner(repo, service_id, user)

    if not await repo.delete_service(service_id):
        raise HTTPException(status_code=404, detail="Service not found")
    logger.info("User %s deleted service %s", user["id"], service_id)
    return ApiResponse(data=MessageOut(message="Service deleted successfully"))


# =========================================================
# 5. Reviews
# =========================================================
@router.post("/{service_id}/reviews", response_model=ApiResponse[ReviewOut], status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    service_id: int = Path(..., ge=1, le=MAX_ID),
    user: dict = Depends(get_current_user),
    repo: MarketplaceRepository = Depends(get_repository),
):
    owner_id = await repo.get_service_owner(service_id)
    if owner_id is None:
        raise HTTPException(status_code=404, detail="Service not found")
    if owner_id == user["id"]:
        raise HTTPException(status_code=403, detail="You cannot review your own service")

    row = await repo.add_review(service_id, user["id"], payload.rating, payload.comment or None)
    return ApiResponse(data=review_from_row(row))
