import struct
import zlib

import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, create_post, png_bytes
from realestate.core.errors import ValidationFailed
from realestate.main import app
from realestate.models.user import Role
from realestate.routers.uploads import parse_form_bool
from realestate.services.images import validate_image
from realestate.services.storage import LocalImageStorage, StorageError, get_storage


def upload(client, post_id, name="photo.png", data=None, is_primary=None):
    form = {"postId": str(post_id)}
    if is_primary is not None:
        form["isPrimary"] = is_primary
    return client.post(
        "/api/uploads",
        files={"image": (name, png_bytes() if data is None else data, "image/png")},
        data=form,
    )


def primaries(client, post_id):
    images = client.get(f"/api/posts/{post_id}").json()["data"]["post"]["images"]
    return [img["id"] for img in images if img["isPrimary"]]


@pytest.fixture
def post_id(seller):
    _, s = seller
    return create_post(s)


def test_first_upload_becomes_primary(seller, post_id, storage, client):
    _, s = seller
    r = upload(s, post_id)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["isPrimary"] is True
    assert data["url"] == "/uploads/" + data["filename"]
    assert data["filename"].endswith(".png")
    assert storage.exists(data["filename"])

    r = client.get(data["url"])
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.content == png_bytes()

    r = upload(s, post_id)
    assert r.json()["data"]["isPrimary"] is False
    assert primaries(client, post_id) == [data["imageId"]]


def test_explicit_primary_replaces_previous(seller, post_id, client):
    _, s = seller
    first = upload(s, post_id).json()["data"]["imageId"]
    second = upload(s, post_id, is_primary="true").json()["data"]["imageId"]

    assert primaries(client, post_id) == [second]
    images = client.get(f"/api/posts/{post_id}").json()["data"]["post"]["images"]
    # primary first
    assert [img["id"] for img in images] == [second, first]


def test_deleting_primary_promotes_lowest_id(seller, post_id, client, storage):
    _, s = seller
    a = upload(s, post_id).json()["data"]
    b = upload(s, post_id).json()["data"]
    c = upload(s, post_id).json()["data"]

    r = s.delete(f"/api/uploads/{a['imageId']}")
    assert r.status_code == 200
    assert not storage.exists(a["filename"])
    assert primaries(client, post_id) == [b["imageId"]]

    r = s.delete(f"/api/uploads/{c['imageId']}")
    assert r.status_code == 200
    assert primaries(client, post_id) == [b["imageId"]]

    assert s.delete(f"/api/uploads/{c['imageId']}").status_code == 404


def test_upload_rejects_bad_files(seller, post_id):
    _, s = seller
    r = upload(s, post_id, name="notes.txt")
    assert r.status_code == 422
    assert r.json()["errors"]["image"].startswith("Invalid file type")

    r = upload(s, post_id, name="fake.png", data=b"definitely not an image")
    assert r.status_code == 422
    assert r.json()["errors"]["image"] == "Invalid image file"

    r = upload(s, post_id, is_primary="maybe")
    assert r.status_code == 422
    assert r.json()["errors"] == {"isPrimary": "Must be true or false"}


def test_upload_permissions(seller, post_id, make_user, login, buyer):
    _, b = buyer
    r = upload(b, post_id)
    assert r.status_code == 403

    make_user("other", role=Role.SELLER)
    other = login("other")
    r = upload(other, post_id)
    assert r.status_code == 403
    assert r.json()["message"] == "Cannot upload images to this post"

    _, s = seller
    assert upload(s, 9999).status_code == 404

    image_id = upload(s, post_id).json()["data"]["imageId"]
    r = other.delete(f"/api/uploads/{image_id}")
    assert r.status_code == 403


def test_serve_rejects_unknown_files(client):
    assert client.get("/uploads/missing.png").status_code == 404
    assert client.get("/uploads/..%2Fsecret.png").status_code == 404


def test_validate_image_size_limit(monkeypatch):
    from realestate.core.config import settings

    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 10)
    with pytest.raises(ValidationFailed) as exc:
        validate_image(png_bytes(), "big.png")
    assert exc.value.errors["image"].startswith("File too large")


def test_validate_image_empty():
    with pytest.raises(ValidationFailed) as exc:
        validate_image(b"", "empty.png")
    assert exc.value.errors == {"image": "No image uploaded"}


@pytest.mark.parametrize("raw,expected", [
    (None, False), ("", False), ("false", False), ("0", False),
    ("true", True), ("1", True), ("TRUE", True),
])
def test_parse_form_bool(raw, expected):
    assert parse_form_bool(raw, "isPrimary") is expected


def test_parse_form_bool_rejects_other_values():
    with pytest.raises(ValidationFailed):
        parse_form_bool("yes", "isPrimary")


def oversized_png(width=30000, height=30000) -> bytes:
    """A tiny PNG whose header claims a huge canvas."""

    def chunk(kind, data):
        crc = zlib.crc32(kind + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", ihdr)
        + chunk(b"IDAT", zlib.compress(b""))
        + chunk(b"IEND", b"")
    )


def test_oversized_dimensions_rejected(seller, post_id):
    _, s = seller
    r = upload(s, post_id, name="huge.png", data=oversized_png())
    assert r.status_code == 422
    assert r.json() == {
        "success": False,
        "message": "Validation failed",
        "errors": {"image": "Invalid image file"},
    }


def test_validate_image_oversized_dimensions():
    with pytest.raises(ValidationFailed) as exc:
        validate_image(oversized_png(), "huge.png")
    assert exc.value.errors == {"image": "Invalid image file"}


class BrokenStorage(LocalImageStorage):
    def save(self, data, name, content_type=None):
        raise StorageError("disk full")


def test_storage_failure_uses_envelope(seller, post_id, tmp_path):
    app.dependency_overrides[get_storage] = lambda: BrokenStorage(str(tmp_path / "broken"))
    c = TestClient(app, raise_server_exceptions=False)
    r = c.post("/api/auth/login", json={"username": "sally", "password": PASSWORD})
    assert r.status_code == 200

    r = upload(c, post_id)
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Internal server error"}
