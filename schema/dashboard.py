"""Response models of the role dashboards."""

from pydantic import BaseModel, ConfigDict, Field

from typing import Annotated, List

from schema.orders import OrderResponse


class ArtistOverview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_artworks: Annotated[int, Field(alias="totalArtworks")]
    available_artworks: Annotated[int, Field(alias="availableArtworks")]
    total_orders: Annotated[int, Field(alias="totalOrders")]
    total_revenue: Annotated[float, Field(alias="totalRevenue")]


class CustomerOverview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_orders: Annotated[int, Field(alias="totalOrders")]
    total_spent: Annotated[float, Field(alias="totalSpent")]
    cart_items: Annotated[int, Field(alias="cartItems")]
    wishlist_items: Annotated[int, Field(alias="wishlistItems")]


class AdminOverview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_users: Annotated[int, Field(alias="totalUsers")]
    total_customers: Annotated[int, Field(alias="totalCustomers")]
    total_artists: Annotated[int, Field(alias="totalArtists")]
    pending_users: Annotated[int, Field(alias="pendingUsers")]
    total_artworks: Annotated[int, Field(alias="totalArtworks")]
    total_orders: Annotated[int, Field(alias="totalOrders")]


class MonthlyStat(BaseModel):
    month: str
    year: int
    orders: int
    revenue: float


class AdminAnalytics(BaseModel):
    """Marketplace totals, the latest orders and six months of order history."""

    model_config = ConfigDict(populate_by_name=True)

    total_users: Annotated[int, Field(alias="totalUsers")]
    total_artists: Annotated[int, Field(alias="totalArtists")]
    total_customers: Annotated[int, Field(alias="totalCustomers")]
    total_artworks: Annotated[int, Field(alias="totalArtworks")]
    total_orders: Annotated[int, Field(alias="totalOrders")]
    total_revenue: Annotated[float, Field(alias="totalRevenue")]
    recent_orders: Annotated[List[OrderResponse], Field(alias="recentOrders")]
    monthly_stats: Annotated[List[MonthlyStat], Field(alias="monthlyStats")]
