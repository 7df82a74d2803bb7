import asyncio
import calendar

from datetime import datetime

import pytest

from models.helpers import Role, utc_now
from routers.admin import last_months


@pytest.fixture
def admin(client, store, mint_token, bearer):
    user = asyncio.run(store.create_user("root@gallery.io", "not-a-login-hash", "Root", "Admin", Role.ADMIN))
    return {"id": user.id, "headers": bearer(mint_token(user.id, user.email, "ADMIN"))}


@pytest.fixture
def artist(register_user, bearer):
    body = register_user(role="ARTIST")
    return {"id": body["user"]["id"], "headers": bearer(body["tokens"]["accessToken"])}


@pytest.fixture
def customer(register_user, bearer):
    body = register_user(role="CUSTOMER")
    return {"id": body["user"]["id"], "headers": bearer(body["tokens"]["accessToken"])}


def publish(client, artist, **fields):
    payload = {"title": "Untitled", "price": 250.0, **fields}
    response = client.post("/api/artworks", json=payload, headers=artist["headers"])
    assert response.status_code == 201, response.text
    return response.json()


# Artworks


def test_catalogue_lists_available_artworks_only(client, artist):
    shown = publish(client, artist, title="Shown", category="oil")
    hidden = publish(client, artist, title="Sold")
    client.put(f"/api/artworks/{hidden['id']}", json={"isAvailable": False}, headers=artist["headers"])

    body = client.get("/api/artworks").json()

    assert [a["id"] for a in body["artworks"]] == [shown["id"]]
    assert body["total"] == 1
    assert body["page"] == 0
    assert client.get("/api/artworks", params={"category": "watercolour"}).json()["total"] == 0


def test_my_artworks_includes_unavailable(client, artist):
    artwork = publish(client, artist)
    client.put(f"/api/artworks/{artwork['id']}", json={"isAvailable": False}, headers=artist["headers"])

    body = client.get("/api/artworks/my-artworks", headers=artist["headers"]).json()

    assert body["total"] == 1
    assert body["artworks"][0]["isAvailable"] is False


def test_get_artwork(client, artist):
    artwork = publish(client, artist, title="Dawn")

    response = client.get(f"/api/artworks/{artwork['id']}")

    assert response.status_code == 200
    assert response.json()["title"] == "Dawn"
    assert response.json()["artistId"] == artist["id"]


def test_unknown_artwork_is_404(client):
    response = client.get("/api/artworks/doesnotexist")

    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"


def test_owner_deletes_and_stranger_cannot(client, artist, register_user, bearer):
    artwork = publish(client, artist)
    stranger = bearer(register_user(role="ARTIST")["tokens"]["accessToken"])

    assert client.delete(f"/api/artworks/{artwork['id']}", headers=stranger).status_code == 403
    assert client.delete(f"/api/artworks/{artwork['id']}", headers=artist["headers"]).status_code == 200
    assert client.get(f"/api/artworks/{artwork['id']}").status_code == 404


def test_admin_may_edit_any_artwork(client, artist, admin):
    artwork = publish(client, artist)

    response = client.put(f"/api/artworks/{artwork['id']}", json={"price": 99.5}, headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["price"] == 99.5


def test_admin_creates_on_behalf_of_artist(client, artist, admin):
    response = client.post(
        "/api/artworks",
        json={"title": "Commission", "price": 10.0, "artistId": artist["id"]},
        headers=admin["headers"],
    )

    assert response.status_code == 201
    assert response.json()["artistId"] == artist["id"]


@pytest.mark.parametrize("artist_id", [None, "missing"])
def test_admin_create_needs_an_existing_artist(client, admin, artist_id):
    payload = {"title": "Orphan", "price": 10.0}
    if artist_id:
        payload["artistId"] = artist_id

    response = client.post("/api/artworks", json=payload, headers=admin["headers"])

    assert response.status_code == 400
    assert "artistId" in response.json()["validationErrors"]


def test_artist_id_in_payload_is_ignored_for_artists(client, artist, customer):
    artwork = publish(client, artist, artistId=customer["id"])

    assert artwork["artistId"] == artist["id"]


# Artists


def test_artist_directory(client, artist, customer):
    publish(client, artist, title="Public")

    listing = client.get("/api/artists").json()
    profile = client.get(f"/api/artists/{artist['id']}")
    works = client.get(f"/api/artists/{artist['id']}/artworks").json()

    assert [a["id"] for a in listing["artists"]] == [artist["id"]]
    assert "email" not in listing["artists"][0]
    assert profile.status_code == 200
    assert works["total"] == 1
    assert client.get(f"/api/artists/{customer['id']}").status_code == 404


# Orders


def test_customer_places_order_with_snapshot_prices(client, artist, customer):
    artwork = publish(client, artist, price=120.0)

    response = client.post(
        "/api/orders",
        json={"items": [{"artworkId": artwork["id"], "quantity": 2}], "shippingAddress": "1 Gallery Row"},
        headers=customer["headers"],
    )

    assert response.status_code == 201
    body = response.json()
    assert body["customerId"] == customer["id"]
    assert body["totalAmount"] == 240.0
    assert body["items"][0]["artistId"] == artist["id"]
    assert body["status"] == "PENDING"


def test_artist_cannot_order(client, artist):
    artwork = publish(client, artist)

    response = client.post("/api/orders", json={"items": [{"artworkId": artwork["id"]}]}, headers=artist["headers"])

    assert response.status_code == 403


def test_unavailable_artwork_cannot_be_ordered(client, artist, customer):
    artwork = publish(client, artist)
    client.put(f"/api/artworks/{artwork['id']}", json={"isAvailable": False}, headers=artist["headers"])

    response = client.post("/api/orders", json={"items": [{"artworkId": artwork["id"]}]}, headers=customer["headers"])

    assert response.status_code == 400


def test_order_visibility(client, artist, customer, register_user, bearer):
    artwork = publish(client, artist)
    order = client.post(
        "/api/orders", json={"items": [{"artworkId": artwork["id"]}]}, headers=customer["headers"]
    ).json()
    other_customer = bearer(register_user(role="CUSTOMER")["tokens"]["accessToken"])
    other_artist = bearer(register_user(role="ARTIST")["tokens"]["accessToken"])

    assert client.get(f"/api/orders/{order['id']}", headers=customer["headers"]).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=artist["headers"]).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=other_customer).status_code == 403
    assert client.get(f"/api/orders/{order['id']}", headers=other_artist).status_code == 403

    assert client.get("/api/orders", headers=customer["headers"]).json()["total"] == 1
    assert client.get("/api/orders", headers=artist["headers"]).json()["total"] == 1
    assert client.get("/api/orders", headers=other_customer).json()["total"] == 0


def test_admin_is_kept_out_of_orders(client, admin):
    assert client.get("/api/orders", headers=admin["headers"]).status_code == 403


# Cart and wishlist


def test_cart_lifecycle(client, artist, customer):
    first = publish(client, artist)
    second = publish(client, artist)
    headers = customer["headers"]

    assert client.post("/api/cart/items", json={"artworkId": first["id"]}, headers=headers).status_code == 201
    again = client.post("/api/cart/items", json={"artworkId": first["id"], "quantity": 2}, headers=headers)
    client.post("/api/cart/items", json={"artworkId": second["id"]}, headers=headers)

    assert again.json()["quantity"] == 3
    cart = client.get("/api/cart", headers=headers).json()
    assert cart["totalItems"] == 4
    assert len(cart["items"]) == 2

    assert client.delete(f"/api/cart/items/{second['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/cart/items/{second['id']}", headers=headers).status_code == 404

    assert client.delete("/api/cart", headers=headers).status_code == 200
    assert client.get("/api/cart", headers=headers).json() == {"items": [], "totalItems": 0}


def test_cart_rejects_unknown_artwork(client, customer):
    response = client.post("/api/cart/items", json={"artworkId": "nope"}, headers=customer["headers"])

    assert response.status_code == 404


def test_wishlist_lifecycle(client, artist, customer):
    artwork = publish(client, artist)
    headers = customer["headers"]

    first = client.post("/api/wishlist", json={"artworkId": artwork["id"]}, headers=headers)
    second = client.post("/api/wishlist", json={"artworkId": artwork["id"]}, headers=headers)

    assert first.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    assert len(client.get("/api/wishlist", headers=headers).json()) == 1

    assert client.delete(f"/api/wishlist/{artwork['id']}", headers=headers).status_code == 200
    assert client.get("/api/wishlist", headers=headers).json() == []


# Dashboards


def test_artist_and_customer_dashboards(client, artist, customer):
    artwork = publish(client, artist, price=50.0)
    publish(client, artist)
    client.post("/api/orders", json={"items": [{"artworkId": artwork["id"], "quantity": 2}]}, headers=customer["headers"])
    client.post("/api/wishlist", json={"artworkId": artwork["id"]}, headers=customer["headers"])

    artist_view = client.get("/api/dashboard/artist/overview", headers=artist["headers"]).json()
    customer_view = client.get("/api/dashboard/customer/overview", headers=customer["headers"]).json()

    assert artist_view == {"totalArtworks": 2, "availableArtworks": 2, "totalOrders": 1, "totalRevenue": 100.0}
    assert customer_view == {"totalOrders": 1, "totalSpent": 100.0, "cartItems": 0, "wishlistItems": 1}


def test_admin_dashboard(client, admin, artist, customer):
    publish(client, artist)

    body = client.get("/api/dashboard/admin/overview", headers=admin["headers"]).json()

    assert body["totalUsers"] == 3
    assert body["totalCustomers"] == 1
    assert body["totalArtists"] == 1
    assert body["totalArtworks"] == 1
    assert body["totalOrders"] == 0


# Users and administration


def test_profile_update(client, customer):
    response = client.put(
        "/api/users/profile",
        json={"firstName": "Renamed", "bio": "Collector"},
        headers=customer["headers"],
    )

    assert response.status_code == 200
    assert response.json()["firstName"] == "Renamed"
    assert response.json()["bio"] == "Collector"
    assert client.get("/api/users/profile", headers=customer["headers"]).json()["firstName"] == "Renamed"


def test_user_update_is_self_or_admin(client, customer, artist, admin):
    url = f"/api/users/{customer['id']}"

    assert client.put(url, json={"lastName": "Self"}, headers=customer["headers"]).status_code == 200
    assert client.put(url, json={"lastName": "Other"}, headers=artist["headers"]).status_code == 403
    assert client.put(url, json={"lastName": "Admin"}, headers=admin["headers"]).json()["lastName"] == "Admin"


def test_admin_lists_users_with_filters(client, admin, artist, customer):
    everyone = client.get("/api/admin/users", headers=admin["headers"]).json()
    artists = client.get("/api/admin/users", params={"role": "ROLE_ARTIST"}, headers=admin["headers"]).json()

    assert everyone["total"] == 3
    assert everyone["limit"] == 20
    assert [u["id"] for u in artists["users"]] == [artist["id"]]
    assert client.get("/api/admin/users", params={"role": "CURATOR"}, headers=admin["headers"]).status_code == 400


def test_admin_suspends_user(client, admin, customer):
    response = client.put(
        f"/api/admin/users/{customer['id']}/status", json={"status": "suspended"}, headers=admin["headers"]
    )

    assert response.status_code == 200
    assert response.json()["status"] == "SUSPENDED"
    assert client.get("/api/users/profile", headers=customer["headers"]).status_code == 401


def test_admin_cannot_change_own_status(client, admin):
    response = client.put(f"/api/admin/users/{admin['id']}/status", json={"status": "SUSPENDED"}, headers=admin["headers"])

    assert response.status_code == 400


def test_role_change_applies_to_new_tokens(client, admin, register_user):
    body = register_user(email="switch@gallery.io", role="CUSTOMER")

    response = client.put(
        f"/api/admin/users/{body['user']['id']}/role", json={"role": "ARTIST"}, headers=admin["headers"]
    )
    login = client.post("/api/auth/login", json={"email": "switch@gallery.io", "password": "P@ssw0rd!"})

    assert response.json()["role"] == "ARTIST"
    assert login.json()["redirectUrl"] == "/dashboard/artist"


def test_admin_update_of_missing_user_is_404(client, admin):
    response = client.put("/api/admin/users/ghost/role", json={"role": "ARTIST"}, headers=admin["headers"])

    assert response.status_code == 404


def place_order(client, customer, artwork, quantity=1):
    response = client.post(
        "/api/orders",
        json={"items": [{"artworkId": artwork["id"], "quantity": quantity}]},
        headers=customer["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


# Catalogue search


def test_artwork_query_filters_and_pages(client, artist):
    sunset = publish(client, artist, title="Sunset over hills", category="oil", price=100.0)
    harbour = publish(client, artist, title="Harbour", category="oil", price=300.0)
    sketch = publish(client, artist, title="Sketch", category="ink", price=50.0)

    in_range = client.get("/api/v1/artwork-query", params={"minPrice": 90, "maxPrice": 350}).json()
    searched = client.get("/api/v1/artwork-query", params={"search": "SUNSET"}).json()
    by_category = client.get("/api/v1/artwork-query", params={"category": "ink"}).json()
    paged = client.get("/api/v1/artwork-query", params={"limit": 1, "page": 1}).json()

    assert {a["id"] for a in in_range["artworks"]} == {sunset["id"], harbour["id"]}
    assert in_range["totalItems"] == 2
    assert in_range["currentPage"] == 0
    assert [a["id"] for a in searched["artworks"]] == [sunset["id"]]
    assert [a["id"] for a in by_category["artworks"]] == [sketch["id"]]
    assert paged["totalPages"] == 3
    assert paged["currentPage"] == 1
    assert len(paged["artworks"]) == 1


def test_artwork_query_rejects_bad_parameters(client):
    assert client.get("/api/v1/artwork-query", params={"minPrice": 500, "maxPrice": 100}).status_code == 400
    assert client.get("/api/v1/artwork-query", params={"limit": 51}).status_code == 400


def test_only_admins_feature_artworks(client, artist, admin):
    chosen = publish(client, artist, title="Chosen")
    other = publish(client, artist, title="Other")

    client.put(f"/api/artworks/{other['id']}", json={"featured": True}, headers=artist["headers"])
    response = client.put(f"/api/admin/artworks/{chosen['id']}", json={"featured": True}, headers=admin["headers"])
    featured = client.get("/api/v1/artwork-query/featured").json()

    assert response.status_code == 200
    assert response.json()["featured"] is True
    assert [a["id"] for a in featured] == [chosen["id"]]


def test_related_artworks_share_the_category(client, artist):
    first = publish(client, artist, category="oil")
    second = publish(client, artist, category="oil")
    publish(client, artist, category="ink")

    related = client.get(f"/api/v1/artwork-query/{first['id']}/related").json()

    assert [a["id"] for a in related] == [second["id"]]
    assert client.get("/api/v1/artwork-query/missing/related").status_code == 404
    assert client.get(f"/api/v1/artwork-query/{first['id']}/related", params={"limit": 13}).status_code == 400


def test_artwork_query_by_artist_and_id(client, artist):
    shown = publish(client, artist)
    hidden = publish(client, artist)
    client.put(f"/api/artworks/{hidden['id']}", json={"isAvailable": False}, headers=artist["headers"])

    listing = client.get(f"/api/v1/artwork-query/artist/{artist['id']}").json()

    assert [a["id"] for a in listing] == [shown["id"]]
    assert client.get(f"/api/v1/artwork-query/{shown['id']}").json()["artistId"] == artist["id"]


# Reviews


def test_only_buyers_review_and_only_once(client, artist, customer):
    artwork = publish(client, artist)
    review = {"artworkId": artwork["id"], "rating": 5, "comment": "Stunning"}

    assert client.post("/api/reviews", json=review, headers=customer["headers"]).status_code == 403

    place_order(client, customer, artwork)
    created = client.post("/api/reviews", json=review, headers=customer["headers"])
    again = client.post("/api/reviews", json=review, headers=customer["headers"])

    assert created.status_code == 201
    assert created.json()["customerId"] == customer["id"]
    assert created.json()["rating"] == 5
    assert again.status_code == 409
    assert client.post("/api/reviews", json=review, headers=artist["headers"]).status_code == 403


def test_review_validation(client, customer):
    missing = client.post("/api/reviews", json={"artworkId": "missing", "rating": 3}, headers=customer["headers"])
    out_of_range = client.post("/api/reviews", json={"artworkId": "a1", "rating": 6}, headers=customer["headers"])

    assert missing.status_code == 404
    assert out_of_range.status_code == 400


def test_cancelled_order_does_not_entitle_a_review(client, artist, customer, admin):
    artwork = publish(client, artist)
    order = place_order(client, customer, artwork)
    client.put(f"/api/admin/orders/{order['id']}/status", json={"status": "CANCELLED"}, headers=admin["headers"])

    response = client.post(
        "/api/reviews", json={"artworkId": artwork["id"], "rating": 2}, headers=customer["headers"]
    )

    assert response.status_code == 403


def test_artwork_reviews_are_public(client, artist, customer, register_user, bearer):
    artwork = publish(client, artist)
    second = {"headers": bearer(register_user(role="CUSTOMER")["tokens"]["accessToken"])}
    for buyer, rating in ((customer, 5), (second, 2)):
        place_order(client, buyer, artwork)
        client.post("/api/reviews", json={"artworkId": artwork["id"], "rating": rating}, headers=buyer["headers"])

    body = client.get(f"/api/reviews/artwork/{artwork['id']}").json()

    assert body["total"] == 2
    assert body["averageRating"] == 3.5
    assert client.get("/api/reviews/artwork/missing").status_code == 404


def test_artist_reviews_are_for_the_artist_and_admins(client, artist, customer, admin, register_user, bearer):
    artwork = publish(client, artist)
    place_order(client, customer, artwork)
    client.post("/api/reviews", json={"artworkId": artwork["id"], "rating": 4}, headers=customer["headers"])
    stranger = bearer(register_user(role="ARTIST")["tokens"]["accessToken"])
    url = f"/api/reviews/artist/{artist['id']}"

    own = client.get(url, headers=artist["headers"])

    assert own.status_code == 200
    assert own.json()["total"] == 1
    assert own.json()["reviews"][0]["artworkId"] == artwork["id"]
    assert client.get(url, headers=admin["headers"]).json()["averageRating"] == 4.0
    assert client.get(url, headers=stranger).status_code == 403
    assert client.get(url, headers=customer["headers"]).status_code == 403
    assert client.get(url).status_code == 401


def test_featured_artists_carry_counts_and_ratings(client, artist, customer):
    first = publish(client, artist)
    publish(client, artist)
    place_order(client, customer, first)
    client.post("/api/reviews", json={"artworkId": first["id"], "rating": 4}, headers=customer["headers"])

    body = client.get("/api/artists/featured").json()

    assert len(body["artists"]) == 1
    assert body["artists"][0]["id"] == artist["id"]
    assert body["artists"][0]["artworkCount"] == 2
    assert body["artists"][0]["averageRating"] == 4.0


# Admin moderation of artworks and orders


def test_admin_lists_artworks_by_status(client, artist, admin):
    shown = publish(client, artist)
    sold = publish(client, artist)
    client.put(f"/api/artworks/{sold['id']}", json={"isAvailable": False}, headers=artist["headers"])

    def ids(**params):
        body = client.get("/api/admin/artworks", params=params, headers=admin["headers"]).json()
        return {a["id"] for a in body["artworks"]}

    assert ids() == {shown["id"], sold["id"]}
    assert ids(status="available") == {shown["id"]}
    assert ids(status="UNAVAILABLE") == {sold["id"]}
    assert client.get("/api/admin/artworks", params={"status": "sold"}, headers=admin["headers"]).status_code == 400


def test_admin_deletes_any_artwork(client, artist, admin):
    artwork = publish(client, artist)

    assert client.delete(f"/api/admin/artworks/{artwork['id']}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/api/artworks/{artwork['id']}").status_code == 404
    assert client.delete(f"/api/admin/artworks/{artwork['id']}", headers=admin["headers"]).status_code == 404
    assert client.delete(f"/api/admin/artworks/{artwork['id']}", headers=artist["headers"]).status_code == 403


def test_admin_moves_orders_through_their_lifecycle(client, artist, customer, admin):
    artwork = publish(client, artist)
    order = place_order(client, customer, artwork)
    url = f"/api/admin/orders/{order['id']}/status"

    shipped = client.put(url, json={"status": "shipped"}, headers=admin["headers"])

    assert shipped.status_code == 200
    assert shipped.json()["status"] == "SHIPPED"
    assert client.get(f"/api/orders/{order['id']}", headers=customer["headers"]).json()["status"] == "SHIPPED"
    assert client.put(url, json={"status": "LOST"}, headers=admin["headers"]).status_code == 400
    assert client.put(url, json={"status": "PAID"}, headers=customer["headers"]).status_code == 403
    assert client.put(
        "/api/admin/orders/ghost/status", json={"status": "PAID"}, headers=admin["headers"]
    ).status_code == 404

    listed = client.get("/api/admin/orders", params={"status": "SHIPPED"}, headers=admin["headers"]).json()
    assert [o["id"] for o in listed["orders"]] == [order["id"]]
    assert client.get("/api/admin/orders", params={"status": "PENDING"}, headers=admin["headers"]).json()["total"] == 0


def test_admin_analytics(client, artist, customer, admin):
    artwork = publish(client, artist, price=120.0)
    place_order(client, customer, artwork, quantity=2)
    cancelled = place_order(client, customer, artwork)
    client.put(
        f"/api/admin/orders/{cancelled['id']}/status", json={"status": "CANCELLED"}, headers=admin["headers"]
    )

    body = client.get("/api/admin/analytics", headers=admin["headers"]).json()

    assert body["totalUsers"] == 3
    assert body["totalArtists"] == 1
    assert body["totalCustomers"] == 1
    assert body["totalArtworks"] == 1
    assert body["totalOrders"] == 2
    assert body["totalRevenue"] == 240.0
    assert len(body["recentOrders"]) == 2
    assert len(body["monthlyStats"]) == 6
    current = body["monthlyStats"][-1]
    assert current["month"] == calendar.month_name[utc_now().month]
    assert current["orders"] == 1
    assert current["revenue"] == 240.0


def test_last_months_cross_the_year_boundary():
    assert last_months(datetime(2026, 2, 14), 4) == [(2025, 11), (2025, 12), (2026, 1), (2026, 2)]
