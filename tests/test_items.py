import asyncio

import pytest
from botocore.exceptions import ClientError

from conftest import auth_headers, run
from picmarket.core.errors import UpstreamFailure
from picmarket.models.item import Item
from picmarket.services.file import get_media_type_for_file, parse_tags, sanitize_filename
from picmarket.models.user import Identity
from picmarket.services.items import upload_item
from picmarket.services.storage import AssetStore, PrefixResolver, get_storage
from server import app


class RecordingClient:
    """Stands in for the S3 client: remembers uploads and answers lookups."""

    def __init__(self, existing=()):
        self.uploads = {}
        self.existing = set(existing)

    def head_object(self, Bucket, Key):
        if Key in self.uploads or Key in self.existing:
            return {}
        raise ClientError({"Error": {"Code": "404"}}, "HeadObject")

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.uploads[key] = (fileobj.read(), ExtraArgs)


class FailingUploadClient(RecordingClient):
    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        raise ClientError({"Error": {"Code": "InternalError"}}, "PutObject")


def make_store(s3):
    return AssetStore(s3, "test-bucket", [PrefixResolver("protected-images/"), PrefixResolver("images/")])


@pytest.fixture()
def recording_client(client):
    s3 = RecordingClient()
    store = make_store(s3)
    app.dependency_overrides[get_storage] = lambda: store
    return s3


def test_parse_tags():
    assert parse_tags(" Beach, sunset ,,beach, SKY ") == ["beach", "sunset", "sky"]
    assert parse_tags(None) == []


def test_sanitize_filename():
    assert sanitize_filename("sunset.jpg") == "sunset.jpg"
    assert sanitize_filename("C:\\Users\\me\\My Photo.png") == "My_Photo.png"
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("") == "image"


def test_media_type_detection():
    assert get_media_type_for_file("photo.JPG") == "image/jpeg"
    assert get_media_type_for_file("notes.txt") is None


def test_upload_creates_pending_item(client, db, recording_client):
    response = client.post(
        "/api/items",
        files={"file": ("sunset.jpg", b"\xff\xd8\xffimage-bytes", "image/jpeg")},
        data={"tags": "Beach, Sunset"},
        headers=auth_headers("U1"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "sunset.jpg"
    assert body["url"] == "protected-images/sunset.jpg"
    assert body["owner"] == "U1"
    assert body["approval_state"] == "pending"
    assert body["tags"] == ["beach", "sunset"]
    data, extra = recording_client.uploads["protected-images/sunset.jpg"]
    assert data == b"\xff\xd8\xffimage-bytes"
    assert extra == {"ContentType": "image/jpeg"}


def test_upload_name_collision_gets_prefix(client, db, recording_client):
    files = {"file": ("sunset.jpg", b"abc", "image/jpeg")}
    client.post("/api/items", files=files, headers=auth_headers("U1"))
    response = client.post("/api/items", files={"file": ("sunset.jpg", b"def", "image/jpeg")},
                           headers=auth_headers("U2"))

    second = response.json()["id"]
    assert second != "sunset.jpg"
    assert second.endswith("_sunset.jpg")
    assert len(recording_client.uploads) == 2


def test_upload_rejects_non_images(client, recording_client):
    response = client.post(
        "/api/items",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers("U1"),
    )
    assert response.status_code == 400
    assert recording_client.uploads == {}


def test_upload_requires_authentication(client, recording_client):
    response = client.post("/api/items", files={"file": ("sunset.jpg", b"abc", "image/jpeg")})
    assert response.status_code == 401


def add_item(db, name, state, tags=()):
    item = Item(id=name, name=name, url=f"protected-images/{name}", owner="U1",
                approval_state=state, tags=list(tags))
    run(db.items.insert_one(item.dict()))


def test_gallery_lists_only_approved_items(client, db):
    add_item(db, "sunset.jpg", "approved", ["beach"])
    add_item(db, "ocean.jpg", "approved", ["sea"])
    add_item(db, "draft.jpg", "pending", ["beach"])
    add_item(db, "blurry.jpg", "rejected")

    names = {item["id"] for item in client.get("/api/items").json()}
    assert names == {"sunset.jpg", "ocean.jpg"}

    tagged = client.get("/api/items", params={"tag": "Beach"}).json()
    assert [item["id"] for item in tagged] == ["sunset.jpg"]

    assert client.get("/api/items/draft.jpg").status_code == 404
    assert client.get("/api/items/sunset.jpg").json()["tags"] == ["beach"]


def test_my_items_include_every_state(client, db):
    add_item(db, "sunset.jpg", "approved")
    add_item(db, "draft.jpg", "pending")

    response = client.get("/api/my-items", headers=auth_headers("U1"))
    assert {item["id"] for item in response.json()} == {"sunset.jpg", "draft.jpg"}


def test_register_and_login(client):
    response = client.post("/api/auth/register",
                           json={"username": "buyer", "email": "buyer@example.com", "password": "pw12345"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    status = client.get("/api/payments/status", headers={"Authorization": f"Bearer {token}"})
    assert status.status_code == 200

    login = client.post("/api/auth/login", json={"email": "buyer@example.com", "password": "pw12345"})
    assert login.status_code == 200
    bad = client.post("/api/auth/login", json={"email": "buyer@example.com", "password": "nope"})
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_concurrent_uploads_of_same_name_get_distinct_items(db):
    await db.items.create_index("id", unique=True)
    s3 = RecordingClient()
    store = make_store(s3)

    first, second = await asyncio.gather(
        upload_item(db, store, Identity(uid="A"), "sunset.jpg", b"AAAA", "image/jpeg", []),
        upload_item(db, store, Identity(uid="B"), "sunset.jpg", b"BBBB", "image/jpeg", []),
    )

    assert first.id != second.id
    assert "sunset.jpg" in {first.id, second.id}
    assert s3.uploads[first.url][0] == b"AAAA"
    assert s3.uploads[second.url][0] == b"BBBB"
    stored = {doc["id"]: doc["owner"] async for doc in db.items.find({})}
    assert stored == {first.id: "A", second.id: "B"}


@pytest.mark.asyncio
async def test_upload_does_not_take_over_legacy_object_names(db):
    s3 = RecordingClient(existing={"images/sunset.jpg"})
    item = await upload_item(db, make_store(s3), Identity(uid="A"), "sunset.jpg", b"new", "image/jpeg", [])

    assert item.id.endswith("_sunset.jpg")
    assert item.url == f"protected-images/{item.id}"
    assert "protected-images/sunset.jpg" not in s3.uploads


@pytest.mark.asyncio
async def test_failed_upload_releases_claimed_name(db):
    store = make_store(FailingUploadClient())
    with pytest.raises(UpstreamFailure):
        await upload_item(db, store, Identity(uid="A"), "sunset.jpg", b"data", "image/jpeg", [])
    assert await db.items.count_documents({}) == 0
