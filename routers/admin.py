"""Moderation of users, artworks and orders, and marketplace analytics for administrators."""

import calendar
import math
import logfire

from fastapi import APIRouter, Depends, Query

from typing import Annotated, Optional

from models.helpers import OrderStatus, Role, UserStatus, utc_now
from routers.artworks import Page, Size, artwork_page, load_artwork
from routers.dashboard import AGGREGATE_PAGE_SIZE
from schema.artworks import AdminArtworkUpdateRequest, ArtworkPage, ArtworkResponse
from schema.dashboard import AdminAnalytics, MonthlyStat
from schema.orders import OrderPage, OrderResponse, OrderStatusUpdateRequest
from schema.security import MessageResponse
from schema.users import RoleUpdateRequest, StatusUpdateRequest, UserListResponse, UserResponse

from security.errors import ResourceNotFound, ValidationFailed
from security.helpers import CurrentPrincipal, get_store


router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    principal: CurrentPrincipal,
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int, Query(ge=1, le=100)] = 20,
    role: Optional[str] = None,
    user_status: Annotated[Optional[UserStatus], Query(alias="status")] = None,
    store=Depends(get_store),
):
    try:
        role_filter = Role.parse(role) if role else None
    except ValueError:
        raise ValidationFailed({"role": "Unknown role"}) from None

    users, total = await store.list_users(page, size, role=role_filter, status=user_status)
    return UserListResponse(
        users=[UserResponse.from_record(u) for u in users],
        total=total,
        page=page,
        limit=size,
    )


@router.put("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    payload: StatusUpdateRequest,
    principal: CurrentPrincipal,
    store=Depends(get_store),
):
    """Approves, suspends or rejects an account.

    A suspended or rejected user gets 401 on the next request, even with an unexpired token.
    """
    if user_id == principal.subject:
        raise ValidationFailed({"status": "Administrators cannot change their own status"})

    user = await store.update_user(user_id, status=payload.status)
    if user is None:
        raise ResourceNotFound("User not found")

    logfire.info(
        "User {user_id} status set to {status} by {admin}",
        user_id=user_id,
        status=payload.status.value,
        admin=principal.subject,
    )
    return UserResponse.from_record(user)


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    payload: RoleUpdateRequest,
    principal: CurrentPrincipal,
    store=Depends(get_store),
):
    """Changes a user's role. Existing tokens keep the old role until they are refreshed."""
    user = await store.update_user(user_id, role=payload.role)
    if user is None:
        raise ResourceNotFound("User not found")

    logfire.info(
        "User {user_id} role set to {role} by {admin}",
        user_id=user_id,
        role=payload.role.value,
        admin=principal.subject,
    )
    return UserResponse.from_record(user)


ARTWORK_STATUS_FILTERS = {"available": True, "unavailable": False}
RECENT_ORDERS = 5
ANALYTICS_MONTHS = 6


@router.get("/artworks", response_model=ArtworkPage)
async def list_artworks(
    principal: CurrentPrincipal,
    page: Page = 0,
    size: Size = 20,
    category: Optional[str] = None,
    artwork_status: Annotated[Optional[str], Query(alias="status")] = None,
    store=Depends(get_store),
):
    """Every artwork, sold ones included. `status` is `available` or `unavailable`."""
    available = None
    if artwork_status:
        try:
            available = ARTWORK_STATUS_FILTERS[artwork_status.lower()]
        except KeyError:
            raise ValidationFailed({"status": "Must be available or unavailable"}) from None

    artworks, total = await store.list_artworks(page, size, category=category, available=available)
    return artwork_page(artworks, total, page, size)


@router.put("/artworks/{artwork_id}", response_model=ArtworkResponse)
async def update_artwork(
    artwork_id: str,
    payload: AdminArtworkUpdateRequest,
    principal: CurrentPrincipal,
    store=Depends(get_store),
):
    await load_artwork(store, artwork_id)
    updated = await store.update_artwork(artwork_id, **payload.model_dump(exclude_unset=True))
    logfire.info("Artwork {artwork_id} updated by {admin}", artwork_id=artwork_id, admin=principal.subject)
    return ArtworkResponse.from_record(updated)


@router.delete("/artworks/{artwork_id}", response_model=MessageResponse)
async def delete_artwork(artwork_id: str, principal: CurrentPrincipal, store=Depends(get_store)):
    if not await store.delete_artwork(artwork_id):
        raise ResourceNotFound("Artwork not found")
    logfire.info("Artwork {artwork_id} deleted by {admin}", artwork_id=artwork_id, admin=principal.subject)
    return MessageResponse(message="Artwork deleted successfully")


@router.get("/orders", response_model=OrderPage)
async def list_orders(
    principal: CurrentPrincipal,
    page: Page = 0,
    size: Size = 20,
    order_status: Annotated[Optional[OrderStatus], Query(alias="status")] = None,
    store=Depends(get_store),
):
    orders, total = await store.list_orders(page, size, status=order_status)
    return OrderPage(
        orders=[OrderResponse.from_record(o) for o in orders],
        total=total,
        page=page,
        total_pages=math.ceil(total / size) if total else 0,
    )


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateRequest,
    principal: CurrentPrincipal,
    store=Depends(get_store),
):
    order = await store.update_order(order_id, status=payload.status)
    if order is None:
        raise ResourceNotFound("Order not found")

    logfire.info(
        "Order {order_id} status set to {status} by {admin}",
        order_id=order_id,
        status=payload.status.value,
        admin=principal.subject,
    )
    return OrderResponse.from_record(order)


def last_months(now, count: int):
    """(year, month) pairs of the `count` months up to and including `now`, oldest first."""
    year, month = now.year, now.month
    months = []
    for _ in range(count):
        months.append((year, month))
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return list(reversed(months))


@router.get("/analytics", response_model=AdminAnalytics)
async def analytics(principal: CurrentPrincipal, store=Depends(get_store)):
    """Revenue counts every order that was not cancelled."""
    _, total_users = await store.list_users(0, 1)
    _, total_artists = await store.list_users(0, 1, role=Role.ARTIST)
    _, total_customers = await store.list_users(0, 1, role=Role.CUSTOMER)
    _, total_artworks = await store.list_artworks(0, 1)
    orders, total_orders = await store.list_orders(0, AGGREGATE_PAGE_SIZE)

    billable = [o for o in orders if o.status is not OrderStatus.CANCELLED]
    monthly_stats = []
    for year, month in last_months(utc_now(), ANALYTICS_MONTHS):
        in_month = [o for o in billable if o.created_at.year == year and o.created_at.month == month]
        monthly_stats.append(
            MonthlyStat(
                month=calendar.month_name[month],
                year=year,
                orders=len(in_month),
                revenue=round(sum(o.total_amount for o in in_month), 2),
            )
        )

    return AdminAnalytics(
        total_users=total_users,
        total_artists=total_artists,
        total_customers=total_customers,
        total_artworks=total_artworks,
        total_orders=total_orders,
        total_revenue=round(sum(o.total_amount for o in billable), 2),
        recent_orders=[OrderResponse.from_record(o) for o in orders[:RECENT_ORDERS]],
        monthly_stats=monthly_stats,
    )
