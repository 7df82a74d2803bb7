"""Per-role overview numbers."""

from fastapi import APIRouter, Depends

from models.helpers import OrderStatus, Role, UserStatus
from schema.dashboard import AdminOverview, ArtistOverview, CustomerOverview

from security.helpers import CurrentPrincipal, get_store


router = APIRouter(
    prefix="/api/dashboard",
    tags=["Dashboard"],
)

# Large enough to aggregate in a single page
AGGREGATE_PAGE_SIZE = 10_000


@router.get("/artist/overview", response_model=ArtistOverview)
async def artist_overview(principal: CurrentPrincipal, store=Depends(get_store)):
    artworks, total_artworks = await store.list_artworks(0, AGGREGATE_PAGE_SIZE, artist_id=principal.subject)
    orders, total_orders = await store.list_orders(0, AGGREGATE_PAGE_SIZE, artist_id=principal.subject)

    revenue = sum(
        item.price * item.quantity
        for order in orders
        if order.status is not OrderStatus.CANCELLED
        for item in order.items
        if item.artist_id == principal.subject
    )
    return ArtistOverview(
        total_artworks=total_artworks,
        available_artworks=sum(1 for a in artworks if a.is_available),
        total_orders=total_orders,
        total_revenue=round(revenue, 2),
    )


@router.get("/customer/overview", response_model=CustomerOverview)
async def customer_overview(principal: CurrentPrincipal, store=Depends(get_store)):
    orders, total_orders = await store.list_orders(0, AGGREGATE_PAGE_SIZE, customer_id=principal.subject)
    cart = await store.list_cart(principal.subject)
    wishlist = await store.list_wishlist(principal.subject)

    return CustomerOverview(
        total_orders=total_orders,
        total_spent=round(sum(o.total_amount for o in orders if o.status is not OrderStatus.CANCELLED), 2),
        cart_items=sum(i.quantity for i in cart),
        wishlist_items=len(wishlist),
    )


@router.get("/admin/overview", response_model=AdminOverview)
async def admin_overview(principal: CurrentPrincipal, store=Depends(get_store)):
    _, total_users = await store.list_users(0, 1)
    _, total_customers = await store.list_users(0, 1, role=Role.CUSTOMER)
    _, total_artists = await store.list_users(0, 1, role=Role.ARTIST)
    _, pending_users = await store.list_users(0, 1, status=UserStatus.PENDING)
    _, total_artworks = await store.list_artworks(0, 1)
    _, total_orders = await store.list_orders(0, 1)

    return AdminOverview(
        total_users=total_users,
        total_customers=total_customers,
        total_artists=total_artists,
        pending_users=pending_users,
        total_artworks=total_artworks,
        total_orders=total_orders,
    )
