from sqlalchemy import select

from conftest import create_post, png_bytes
from realestate.models.post import Post, PostImage
from realestate.models.user import Role


def test_seller_creates_and_lists_post(seller, client):
    _, s = seller
    post_id = create_post(s)

    r = client.get("/api/posts")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
    item = data["posts"][0]
    assert item["id"] == post_id
    assert item["title"] == "Lake House"
    assert item["price"] == 250000
    assert item["propertyType"] == "house"
    assert item["username"] == "sally"
    assert item["primaryImage"] is None


def test_buyer_cannot_create_post(buyer):
    _, b = buyer
    r = b.post("/api/posts", json={
        "title": "Nope", "description": "x", "price": 1, "propertyType": "land",
    })
    assert r.status_code == 403
    assert r.json()["message"] == "Only approved sellers can create posts"


def test_create_post_validation(seller):
    _, s = seller
    r = s.post("/api/posts", json={
        "title": "Castle", "description": "big", "price": -5, "propertyType": "castle",
    })
    assert r.status_code == 422
    errors = r.json()["errors"]
    assert "price" in errors
    assert "propertyType" in errors


def test_anonymous_cannot_create_post(client):
    r = client.post("/api/posts", json={
        "title": "x", "description": "x", "price": 1, "propertyType": "land",
    })
    assert r.status_code == 401


def test_filters(seller, client):
    _, s = seller
    create_post(s)
    create_post(s, title="City Flat", propertyType="apartment", price=90000, bedrooms=1, city="Metro")
    create_post(s, title="Farm", propertyType="land", price=40000, bedrooms=None, city="Lakeside Farms")

    def titles(**params):
        r = client.get("/api/posts", params=params)
        assert r.status_code == 200
        return {p["title"] for p in r.json()["data"]["posts"]}

    assert titles(city="lakeside") == {"Lake House", "Farm"}
    assert titles(property_type="apartment") == {"City Flat"}
    assert titles(min_price=50000, max_price=100000) == {"City Flat"}
    assert titles(bedrooms=2) == {"Lake House"}


def test_pagination_newest_first(seller, client):
    _, s = seller
    ids = [create_post(s, title=f"Listing {i}") for i in range(3)]

    r = client.get("/api/posts", params={"page": 1, "limit": 2})
    data = r.json()["data"]
    assert [p["id"] for p in data["posts"]] == [ids[2], ids[1]]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    r = client.get("/api/posts", params={"page": 2, "limit": 2})
    assert [p["id"] for p in r.json()["data"]["posts"]] == [ids[0]]

    assert client.get("/api/posts", params={"limit": 51}).status_code == 422
    assert client.get("/api/posts", params={"page": 0}).status_code == 422


def test_post_detail_includes_contact(seller, client):
    _, s = seller
    post_id = create_post(s)

    r = client.get(f"/api/posts/{post_id}")
    assert r.status_code == 200
    post = r.json()["data"]["post"]
    assert post["phone"] == "555-0100"
    assert post["email"] == "sally@example.com"
    assert post["images"] == []

    assert client.get("/api/posts/9999").status_code == 404


def test_inactive_post_hidden_from_public(seller, client):
    _, s = seller
    post_id = create_post(s)

    r = s.put(f"/api/posts/{post_id}", json={"status": "sold"})
    assert r.status_code == 200
    assert r.json()["data"]["post"]["status"] == "sold"

    assert client.get(f"/api/posts/{post_id}").status_code == 404
    assert client.get("/api/posts").json()["data"]["posts"] == []

    # still visible to its owner
    r = s.get("/api/posts/my")
    assert [p["id"] for p in r.json()["data"]["posts"]] == [post_id]


def test_only_owner_or_staff_edits(seller, make_user, login, admin):
    _, s = seller
    post_id = create_post(s)

    make_user("other", role=Role.SELLER)
    other = login("other")
    r = other.put(f"/api/posts/{post_id}", json={"price": 1})
    assert r.status_code == 403
    assert r.json()["message"] == "Cannot edit this post"

    _, ad = admin
    r = ad.put(f"/api/posts/{post_id}", json={"price": 240000})
    assert r.status_code == 200
    assert r.json()["data"]["post"]["price"] == 240000

    r = s.put(f"/api/posts/{post_id}", json={})
    assert r.status_code == 400


def test_delete_post_cascades_images(seller, db, storage):
    _, s = seller
    post_id = create_post(s)
    r = s.post(
        "/api/uploads",
        files={"image": ("front.png", png_bytes(), "image/png")},
        data={"postId": str(post_id)},
    )
    assert r.status_code == 201
    filename = r.json()["data"]["filename"]
    assert storage.exists(filename)

    r = s.delete(f"/api/posts/{post_id}")
    assert r.status_code == 200
    assert r.json()["data"] == {"postId": post_id}

    db.expire_all()
    assert db.get(Post, post_id) is None
    assert db.scalar(select(PostImage).where(PostImage.post_id == post_id)) is None
    assert not storage.exists(filename)

    assert s.delete(f"/api/posts/{post_id}").status_code == 404


def test_only_owner_or_staff_deletes(seller, make_user, login, superuser):
    _, s = seller
    post_id = create_post(s)

    make_user("other", role=Role.SELLER)
    other = login("other")
    r = other.delete(f"/api/posts/{post_id}")
    assert r.status_code == 403
    assert r.json()["message"] == "Cannot delete this post"

    _, su = superuser
    assert su.delete(f"/api/posts/{post_id}").status_code == 200
