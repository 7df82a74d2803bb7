"""Persistence for users and the marketplace collaborators.

`MongoStore` is the production backend (Beanie documents over motor).
`MemoryStore` keeps everything in process dictionaries and is used by the
test-suite and for local development when `USE_MEMORY_STORE` is set.
Both return the pydantic `*InDB` records, never documents.
"""

import re
import threading
import uuid

import logfire

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from typing import Any, Dict, List, Optional, Tuple

from models.helpers import OrderStatus, Role, UserStatus, utc_now
from models.users import User
from models.artworks import Artwork
from models.orders import Order, OrderItem, CartItem, WishlistItem
from models.reviews import Review

from schema.users import UserInDB
from schema.artworks import ArtworkInDB
from schema.orders import OrderInDB, OrderItemInDB, CartItemInDB, WishlistItemInDB
from schema.reviews import ReviewInDB

from security.errors import EmailTaken, ReviewExists


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _page_bounds(page: int, size: int) -> Tuple[int, int]:
    page = max(0, page)
    size = max(1, size)
    return page * size, size


def _matches_search(artwork: ArtworkInDB, search: str) -> bool:
    needle = search.casefold()
    return any(needle in (text or "").casefold() for text in (artwork.title, artwork.description, artwork.medium))


class MemoryStore:
    """In-process store. All operations are guarded by one re-entrant lock."""

    def __init__(self) -> None:
        self.users: Dict[str, UserInDB] = {}
        self.artworks: Dict[str, ArtworkInDB] = {}
        self.orders: Dict[str, OrderInDB] = {}
        self.cart: Dict[str, Dict[str, CartItemInDB]] = {}
        self.wishlist: Dict[str, Dict[str, WishlistItemInDB]] = {}
        self.reviews: Dict[str, ReviewInDB] = {}
        self._data_lock = threading.RLock()

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    # Users

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role = Role.CUSTOMER,
    ) -> UserInDB:
        email = normalize_email(email)
        with self._data_lock:
            if any(u.email == email for u in self.users.values()):
                raise EmailTaken()
            user = UserInDB(
                id=self._new_id(),
                email=email,
                password=password_hash,
                first_name=first_name,
                last_name=last_name,
                role=role,
            )
            self.users[user.id] = user
            return user

    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        email = normalize_email(email)
        with self._data_lock:
            return next((u for u in self.users.values() if u.email == email), None)

    async def update_user(self, user_id: str, **fields: Any) -> Optional[UserInDB]:
        with self._data_lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update={**fields, "updated_at": utc_now()})
            self.users[user_id] = updated
            return updated

    async def list_users(
        self,
        page: int = 0,
        size: int = 20,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None,
    ) -> Tuple[List[UserInDB], int]:
        skip, limit = _page_bounds(page, size)
        with self._data_lock:
            users = [
                u
                for u in self.users.values()
                if (role is None or u.role == role) and (status is None or u.status == status)
            ]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users[skip : skip + limit], len(users)

    # Artworks

    async def create_artwork(self, artist_id: str, **fields: Any) -> ArtworkInDB:
        artwork = ArtworkInDB(id=self._new_id(), artist_id=artist_id, **fields)
        with self._data_lock:
            self.artworks[artwork.id] = artwork
        return artwork

    async def get_artwork(self, artwork_id: str) -> Optional[ArtworkInDB]:
        return self.artworks.get(artwork_id)

    async def list_artworks(
        self,
        page: int = 0,
        size: int = 20,
        artist_id: Optional[str] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        search: Optional[str] = None,
        featured_only: bool = False,
        exclude_id: Optional[str] = None,
    ) -> Tuple[List[ArtworkInDB], int]:
        skip, limit = _page_bounds(page, size)
        with self._data_lock:
            artworks = [
                a
                for a in self.artworks.values()
                if (artist_id is None or a.artist_id == artist_id)
                and (category is None or a.category == category)
                and (available is None or a.is_available == available)
                and (min_price is None or a.price >= min_price)
                and (max_price is None or a.price <= max_price)
                and (not search or _matches_search(a, search))
                and (not featured_only or a.featured)
                and (exclude_id is None or a.id != exclude_id)
            ]
        artworks.sort(key=lambda a: a.created_at, reverse=True)
        return artworks[skip : skip + limit], len(artworks)

    async def update_artwork(self, artwork_id: str, **fields: Any) -> Optional[ArtworkInDB]:
        with self._data_lock:
            artwork = self.artworks.get(artwork_id)
            if artwork is None:
                return None
            updated = artwork.model_copy(update={**fields, "updated_at": utc_now()})
            self.artworks[artwork_id] = updated
            return updated

    async def delete_artwork(self, artwork_id: str) -> bool:
        with self._data_lock:
            return self.artworks.pop(artwork_id, None) is not None

    # Orders

    async def create_order(
        self,
        customer_id: str,
        items: List[OrderItemInDB],
        shipping_address: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> OrderInDB:
        order = OrderInDB(
            id=self._new_id(),
            customer_id=customer_id,
            items=items,
            total_amount=round(sum(i.price * i.quantity for i in items), 2),
            shipping_address=shipping_address,
            payment_method=payment_method,
        )
        with self._data_lock:
            self.orders[order.id] = order
        return order

    async def get_order(self, order_id: str) -> Optional[OrderInDB]:
        return self.orders.get(order_id)

    async def list_orders(
        self,
        page: int = 0,
        size: int = 20,
        customer_id: Optional[str] = None,
        artist_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        artwork_id: Optional[str] = None,
    ) -> Tuple[List[OrderInDB], int]:
        skip, limit = _page_bounds(page, size)
        with self._data_lock:
            orders = [
                o
                for o in self.orders.values()
                if (customer_id is None or o.customer_id == customer_id)
                and (artist_id is None or artist_id in o.artist_ids)
                and (status is None or o.status == status)
                and (artwork_id is None or any(i.artwork_id == artwork_id for i in o.items))
            ]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[skip : skip + limit], len(orders)

    async def update_order(self, order_id: str, **fields: Any) -> Optional[OrderInDB]:
        with self._data_lock:
            order = self.orders.get(order_id)
            if order is None:
                return None
            updated = order.model_copy(update={**fields, "updated_at": utc_now()})
            self.orders[order_id] = updated
            return updated

    # Reviews

    async def create_review(
        self,
        customer_id: str,
        artwork_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> ReviewInDB:
        with self._data_lock:
            if any(r.customer_id == customer_id and r.artwork_id == artwork_id for r in self.reviews.values()):
                raise ReviewExists()
            review = ReviewInDB(
                id=self._new_id(),
                customer_id=customer_id,
                artwork_id=artwork_id,
                rating=rating,
                comment=comment,
            )
            self.reviews[review.id] = review
            return review

    async def list_reviews(self, artwork_ids: List[str]) -> List[ReviewInDB]:
        """Reviews of any of the artworks, newest first."""
        wanted = set(artwork_ids)
        with self._data_lock:
            reviews = [r for r in self.reviews.values() if r.artwork_id in wanted]
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        return reviews

    # Cart

    async def list_cart(self, user_id: str) -> List[CartItemInDB]:
        with self._data_lock:
            return sorted(self.cart.get(user_id, {}).values(), key=lambda i: i.added_at)

    async def add_to_cart(self, user_id: str, artwork_id: str, quantity: int = 1) -> CartItemInDB:
        with self._data_lock:
            items = self.cart.setdefault(user_id, {})
            existing = items.get(artwork_id)
            if existing is not None:
                item = existing.model_copy(update={"quantity": existing.quantity + quantity})
            else:
                item = CartItemInDB(id=self._new_id(), user_id=user_id, artwork_id=artwork_id, quantity=quantity)
            items[artwork_id] = item
            return item

    async def remove_from_cart(self, user_id: str, artwork_id: str) -> bool:
        with self._data_lock:
            return self.cart.get(user_id, {}).pop(artwork_id, None) is not None

    async def clear_cart(self, user_id: str) -> None:
        with self._data_lock:
            self.cart.pop(user_id, None)

    # Wishlist

    async def list_wishlist(self, user_id: str) -> List[WishlistItemInDB]:
        with self._data_lock:
            return sorted(self.wishlist.get(user_id, {}).values(), key=lambda i: i.added_at)

    async def add_to_wishlist(self, user_id: str, artwork_id: str) -> WishlistItemInDB:
        with self._data_lock:
            items = self.wishlist.setdefault(user_id, {})
            if artwork_id not in items:
                items[artwork_id] = WishlistItemInDB(id=self._new_id(), user_id=user_id, artwork_id=artwork_id)
            return items[artwork_id]

    async def remove_from_wishlist(self, user_id: str, artwork_id: str) -> bool:
        with self._data_lock:
            return self.wishlist.get(user_id, {}).pop(artwork_id, None) is not None


def _to_user(doc: User) -> UserInDB:
    return UserInDB(id=str(doc.id), **doc.model_dump(exclude={"id", "revision_id"}))


def _to_artwork(doc: Artwork) -> ArtworkInDB:
    return ArtworkInDB(id=str(doc.id), **doc.model_dump(exclude={"id", "revision_id"}))


def _to_order(doc: Order) -> OrderInDB:
    return OrderInDB(id=str(doc.id), **doc.model_dump(exclude={"id", "revision_id"}))


def _to_cart_item(doc: CartItem) -> CartItemInDB:
    return CartItemInDB(id=str(doc.id), **doc.model_dump(exclude={"id", "revision_id"}))


def _to_wishlist_item(doc: WishlistItem) -> WishlistItemInDB:
    return WishlistItemInDB(id=str(doc.id), **doc.model_dump(exclude={"id", "revision_id"}))


def _to_review(doc: Review) -> ReviewInDB:
    return ReviewInDB(id=str(doc.id), **doc.model_dump(exclude={"id", "revision_id"}))


class MongoStore:
    """Beanie-backed store. `init_beanie` must have run before any call."""

    document_models = [User, Artwork, Order, CartItem, WishlistItem, Review]

    @staticmethod
    def _object_id(value: str) -> Optional[ObjectId]:
        return ObjectId(value) if ObjectId.is_valid(value) else None

    # Users

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role = Role.CUSTOMER,
    ) -> UserInDB:
        new_user = User(
            email=normalize_email(email),
            password=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        try:
            await new_user.insert()
        except DuplicateKeyError:
            logfire.warning("Attempt to create duplicate user")
            raise EmailTaken() from None
        return _to_user(new_user)

    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        oid = self._object_id(user_id)
        if oid is None:
            return None
        user = await User.get(oid)
        return _to_user(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        user = await User.find_one(User.email == normalize_email(email))
        return _to_user(user) if user else None

    async def update_user(self, user_id: str, **fields: Any) -> Optional[UserInDB]:
        oid = self._object_id(user_id)
        user = await User.get(oid) if oid else None
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = utc_now()
        await user.save()
        return _to_user(user)

    async def list_users(
        self,
        page: int = 0,
        size: int = 20,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None,
    ) -> Tuple[List[UserInDB], int]:
        skip, limit = _page_bounds(page, size)
        criteria = {}
        if role is not None:
            criteria["role"] = role.value
        if status is not None:
            criteria["status"] = status.value
        query = User.find(criteria)
        total = await query.count()
        users = await query.sort(-User.created_at).skip(skip).limit(limit).to_list()
        return [_to_user(u) for u in users], total

    # Artworks

    async def create_artwork(self, artist_id: str, **fields: Any) -> ArtworkInDB:
        artwork = Artwork(artist_id=artist_id, **fields)
        await artwork.insert()
        return _to_artwork(artwork)

    async def get_artwork(self, artwork_id: str) -> Optional[ArtworkInDB]:
        oid = self._object_id(artwork_id)
        if oid is None:
            return None
        artwork = await Artwork.get(oid)
        return _to_artwork(artwork) if artwork else None

    async def list_artworks(
        self,
        page: int = 0,
        size: int = 20,
        artist_id: Optional[str] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        search: Optional[str] = None,
        featured_only: bool = False,
        exclude_id: Optional[str] = None,
    ) -> Tuple[List[ArtworkInDB], int]:
        skip, limit = _page_bounds(page, size)
        criteria: Dict[str, Any] = {}
        if artist_id is not None:
            criteria["artist_id"] = artist_id
        if category is not None:
            criteria["category"] = category
        if available is not None:
            criteria["is_available"] = available
        if featured_only:
            criteria["featured"] = True
        price: Dict[str, float] = {}
        if min_price is not None:
            price["$gte"] = min_price
        if max_price is not None:
            price["$lte"] = max_price
        if price:
            criteria["price"] = price
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            criteria["$or"] = [{"title": pattern}, {"description": pattern}, {"medium": pattern}]
        if exclude_id is not None and self._object_id(exclude_id) is not None:
            criteria["_id"] = {"$ne": self._object_id(exclude_id)}
        query = Artwork.find(criteria)
        total = await query.count()
        artworks = await query.sort(-Artwork.created_at).skip(skip).limit(limit).to_list()
        return [_to_artwork(a) for a in artworks], total

    async def update_artwork(self, artwork_id: str, **fields: Any) -> Optional[ArtworkInDB]:
        oid = self._object_id(artwork_id)
        artwork = await Artwork.get(oid) if oid else None
        if artwork is None:
            return None
        for key, value in fields.items():
            setattr(artwork, key, value)
        artwork.updated_at = utc_now()
        await artwork.save()
        return _to_artwork(artwork)

    async def delete_artwork(self, artwork_id: str) -> bool:
        oid = self._object_id(artwork_id)
        artwork = await Artwork.get(oid) if oid else None
        if artwork is None:
            return False
        await artwork.delete()
        return True

    # Orders

    async def create_order(
        self,
        customer_id: str,
        items: List[OrderItemInDB],
        shipping_address: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> OrderInDB:
        order = Order(
            customer_id=customer_id,
            items=[OrderItem(**item.model_dump()) for item in items],
            total_amount=round(sum(i.price * i.quantity for i in items), 2),
            shipping_address=shipping_address,
            payment_method=payment_method,
        )
        await order.insert()
        return _to_order(order)

    async def get_order(self, order_id: str) -> Optional[OrderInDB]:
        oid = self._object_id(order_id)
        if oid is None:
            return None
        order = await Order.get(oid)
        return _to_order(order) if order else None

    async def list_orders(
        self,
        page: int = 0,
        size: int = 20,
        customer_id: Optional[str] = None,
        artist_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        artwork_id: Optional[str] = None,
    ) -> Tuple[List[OrderInDB], int]:
        skip, limit = _page_bounds(page, size)
        criteria: Dict[str, Any] = {}
        if customer_id is not None:
            criteria["customer_id"] = customer_id
        if artist_id is not None:
            criteria["items.artist_id"] = artist_id
        if status is not None:
            criteria["status"] = status.value
        if artwork_id is not None:
            criteria["items.artwork_id"] = artwork_id
        query = Order.find(criteria)
        total = await query.count()
        orders = await query.sort(-Order.created_at).skip(skip).limit(limit).to_list()
        return [_to_order(o) for o in orders], total

    async def update_order(self, order_id: str, **fields: Any) -> Optional[OrderInDB]:
        oid = self._object_id(order_id)
        order = await Order.get(oid) if oid else None
        if order is None:
            return None
        for key, value in fields.items():
            setattr(order, key, value)
        order.updated_at = utc_now()
        await order.save()
        return _to_order(order)

    # Reviews

    async def create_review(
        self,
        customer_id: str,
        artwork_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> ReviewInDB:
        review = Review(customer_id=customer_id, artwork_id=artwork_id, rating=rating, comment=comment)
        try:
            await review.insert()
        except DuplicateKeyError:
            logfire.info("Duplicate review rejected for artwork {artwork_id}", artwork_id=artwork_id)
            raise ReviewExists() from None
        return _to_review(review)

    async def list_reviews(self, artwork_ids: List[str]) -> List[ReviewInDB]:
        if not artwork_ids:
            return []
        reviews = await Review.find({"artwork_id": {"$in": list(artwork_ids)}}).sort(-Review.created_at).to_list()
        return [_to_review(r) for r in reviews]

    # Cart

    async def list_cart(self, user_id: str) -> List[CartItemInDB]:
        items = await CartItem.find(CartItem.user_id == user_id).sort(+CartItem.added_at).to_list()
        return [_to_cart_item(i) for i in items]

    async def add_to_cart(self, user_id: str, artwork_id: str, quantity: int = 1) -> CartItemInDB:
        item = await CartItem.find_one(CartItem.user_id == user_id, CartItem.artwork_id == artwork_id)
        if item is None:
            item = CartItem(user_id=user_id, artwork_id=artwork_id, quantity=quantity)
            await item.insert()
        else:
            item.quantity += quantity
            await item.save()
        return _to_cart_item(item)

    async def remove_from_cart(self, user_id: str, artwork_id: str) -> bool:
        item = await CartItem.find_one(CartItem.user_id == user_id, CartItem.artwork_id == artwork_id)
        if item is None:
            return False
        await item.delete()
        return True

    async def clear_cart(self, user_id: str) -> None:
        await CartItem.find(CartItem.user_id == user_id).delete()

    # Wishlist

    async def list_wishlist(self, user_id: str) -> List[WishlistItemInDB]:
        items = await WishlistItem.find(WishlistItem.user_id == user_id).sort(+WishlistItem.added_at).to_list()
        return [_to_wishlist_item(i) for i in items]

    async def add_to_wishlist(self, user_id: str, artwork_id: str) -> WishlistItemInDB:
        item = await WishlistItem.find_one(WishlistItem.user_id == user_id, WishlistItem.artwork_id == artwork_id)
        if item is None:
            item = WishlistItem(user_id=user_id, artwork_id=artwork_id)
            await item.insert()
        return _to_wishlist_item(item)

    async def remove_from_wishlist(self, user_id: str, artwork_id: str) -> bool:
        item = await WishlistItem.find_one(WishlistItem.user_id == user_id, WishlistItem.artwork_id == artwork_id)
        if item is None:
            return False
        await item.delete()
        return True
