"""Items API router — list things for rent, browse, edit and delist listings."""

import logging
import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.api.deps import get_current_active_user, get_db
from rentease.models.booking import Booking
from rentease.models.item import Item
from rentease.models.user import User
from rentease.money import to_paise
from rentease.schemas.auth import MessageResponse
from rentease.schemas.item import ItemCreate, ItemListResponse, ItemResponse, ItemUpdate
from rentease.services.availability import BLOCKING_STATUSES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/items", tags=["items"])

# Rupee request fields stored as paise columns.
_PRICE_COLUMNS = {"daily_price": "daily_price_paise", "item_value": "item_value_paise"}


@router.post(
    "",
    response_model=ItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="List a new item for rent",
)
async def create_item(
    body: ItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Item:
    """Create an item owned by the current user. Prices arrive in rupees."""
    item = Item(
        owner_id=current_user.id,
        title=body.title,
        description=body.description,
        category=body.category,
        condition=body.condition,
        daily_price_paise=to_paise(body.daily_price),
        item_value_paise=to_paise(body.item_value),
        deposit_percentage=body.deposit_percentage,
        min_rental_days=body.min_rental_days,
        max_rental_days=body.max_rental_days,
    )
    db.add(item)
    await db.flush()
    await db.refresh(item)
    logger.info("User %s listed item %s", current_user.id, item.id)
    return item


@router.get(
    "",
    response_model=ItemListResponse,
    summary="Browse active listings",
)
async def list_items(
    category: str | None = Query(None, description="Filter by category"),
    keyword: str | None = Query(None, max_length=100, description="Case-insensitive title match"),
    min_price: Decimal | None = Query(None, ge=0, description="Minimum daily price (rupees)"),
    max_price: Decimal | None = Query(None, ge=0, description="Maximum daily price (rupees)"),
    owner_id: uuid.UUID | None = Query(None, description="Filter by owner"),
    available_only: bool = Query(False, description="Hide items currently rented out"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(12, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Return a paginated list of active items, newest first."""
    filters = [Item.is_active.is_(True)]
    if category is not None and category != "all":
        filters.append(Item.category == category)
    if keyword:
        filters.append(Item.title.ilike(f"%{keyword}%"))
    if min_price is not None:
        filters.append(Item.daily_price_paise >= to_paise(min_price))
    if max_price is not None:
        filters.append(Item.daily_price_paise <= to_paise(max_price))
    if owner_id is not None:
        filters.append(Item.owner_id == owner_id)
    if available_only:
        filters.append(Item.is_available.is_(True))

    total_result = await db.execute(select(func.count()).select_from(Item).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Item).where(*filters).order_by(Item.created_at.desc()).offset(skip).limit(limit)
    )
    items = list(result.scalars().all())

    return {"items": items, "total": total}


@router.get(
    "/{item_id}",
    response_model=ItemResponse,
    summary="Get a single item",
)
async def get_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Item:
    """Return an active item by ID."""
    item = await db.get(Item, item_id)
    if item is None or not item.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
    return item


async def _get_owned_item(
    db: AsyncSession, item_id: uuid.UUID, user: User, *, for_update: bool = False
) -> Item:
    query = select(Item).where(Item.id == item_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    item = (await db.execute(query)).scalar_one_or_none()

    if item is None or not item.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
    if item.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to modify this item",
        )
    return item


@router.put(
    "/{item_id}",
    response_model=ItemResponse,
    summary="Update a listing",
)
async def update_item(
    item_id: uuid.UUID,
    body: ItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Item:
    """Partially update an item. Only explicitly set fields are changed."""
    item = await _get_owned_item(db, item_id, current_user)

    update_data = body.model_dump(exclude_unset=True)
    min_days = update_data.get("min_rental_days", item.min_rental_days)
    max_days = update_data.get("max_rental_days", item.max_rental_days)
    if min_days > max_days:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="min_rental_days must not exceed max_rental_days",
        )

    for field, value in update_data.items():
        if field in _PRICE_COLUMNS:
            setattr(item, _PRICE_COLUMNS[field], to_paise(value))
        else:
            setattr(item, field, value)

    db.add(item)
    await db.flush()
    await db.refresh(item)
    logger.info("User %s updated item %s (%s)", current_user.id, item.id, ", ".join(sorted(update_data)))
    return item


@router.delete(
    "/{item_id}",
    response_model=MessageResponse,
    summary="Delist an item",
)
async def delete_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    """Hide an item from browsing and booking.

    The row is kept so past bookings and ledger entries still resolve. Refused
    while an approved or active booking reserves the item. Pending requests
    stay pending but can no longer be approved.
    """
    item = await _get_owned_item(db, item_id, current_user, for_update=True)

    reserving = await db.scalar(
        select(func.count())
        .select_from(Booking)
        .where(Booking.item_id == item.id, Booking.status.in_(BLOCKING_STATUSES))
    )
    if reserving:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Item has approved or active bookings",
        )

    # Bumping the version makes an approval that checked before us lose its claim.
    result = await db.execute(
        update(Item)
        .where(Item.id == item.id, Item.reservation_version == item.reservation_version)
        .values(is_active=False, reservation_version=Item.reservation_version + 1)
        .returning(Item.id)
        .execution_options(synchronize_session=False)
    )
    if result.scalar_one_or_none() is None:
        logger.warning("Delisting item %s lost a reservation race", item.id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Item was reserved concurrently; reload and retry",
        )
    await db.refresh(item)

    logger.info("User %s delisted item %s", current_user.id, item.id)
    return MessageResponse(message="Item delisted")
