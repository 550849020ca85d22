import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from config import SUPABASE_STORAGE_BUCKET, MAX_UPLOAD_BYTES
from routers.upload.helpers import upload_helpers
from utils.errors import ValidationError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeBucket:
    def __init__(self, storage):
        self.storage = storage

    def upload(self, path, file, file_options=None):
        self.storage.uploaded[path] = (file, file_options)

    def create_signed_url(self, path, expires_in):
        self.storage.signed.append((path, expires_in))
        return {
            "signedURL": f"https://demo.supabase.co/storage/v1/object/sign/{self.storage.bucket}/{path}?token=t{len(self.storage.signed)}"
        }


class FakeStorage:
    def __init__(self):
        self.bucket = None
        self.uploaded = {}
        self.signed = []

    def from_(self, bucket):
        self.bucket = bucket
        return FakeBucket(self)


class BrokenStorage:
    def from_(self, bucket):
        raise ConnectionError("storage unreachable")


@pytest.fixture
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(upload_helpers, "_storage", fake)
    return fake


async def test_upload_product_image_to_storage(client, headers, storage):
    response = await client.post(
        "/upload/image",
        params={"type": "product"},
        files={"image": ("bag.PNG", PNG, "image/png")},
        headers=headers["supplier"],
    )

    assert response.status_code == 200
    url = response.json()["data"]["url"]
    assert f"/storage/v1/object/sign/{SUPABASE_STORAGE_BUCKET}/products/" in url

    [(path, (content, options))] = storage.uploaded.items()
    assert path.startswith("products/") and path.endswith(".png")
    assert content == PNG
    assert options == {"content-type": "image/png"}


async def test_avatar_goes_to_avatar_folder(client, headers, storage):
    response = await client.post(
        "/upload/image",
        params={"type": "avatar"},
        files={"image": ("me.jpg", PNG, "image/jpeg")},
        headers=headers["manufacturer"],
    )

    assert response.status_code == 200
    assert list(storage.uploaded)[0].startswith("avatars/")


async def test_upload_falls_back_to_data_url(client, headers, monkeypatch):
    monkeypatch.setattr(upload_helpers, "_storage", BrokenStorage())

    response = await client.post(
        "/upload/image",
        files={"image": ("bag.png", PNG, "image/png")},
        headers=headers["supplier"],
    )

    assert response.status_code == 200
    assert response.json()["data"]["url"].startswith("data:image/png;base64,")


async def test_upload_rejects_non_images(client, headers, storage):
    response = await client.post(
        "/upload/image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=headers["supplier"],
    )

    assert response.status_code == 400
    assert storage.uploaded == {}


async def test_upload_rejects_large_files(client, headers, storage):
    response = await client.post(
        "/upload/image",
        files={"image": ("big.png", b"\x00" * (MAX_UPLOAD_BYTES + 1), "image/png")},
        headers=headers["supplier"],
    )

    assert response.status_code == 400
    assert "2MB" in response.json()["message"]


async def test_upload_requires_a_file(client, headers, storage):
    response = await client.post("/upload/image", headers=headers["supplier"])

    assert response.status_code == 400
    assert response.json()["message"] == "Please choose an image to upload"


async def test_upload_type_is_validated(client, headers, storage):
    response = await client.post(
        "/upload/image",
        params={"type": "banner"},
        files={"image": ("bag.png", PNG, "image/png")},
        headers=headers["supplier"],
    )
    assert response.status_code == 400


async def test_upload_requires_login(client, users, storage):
    response = await client.post("/upload/image", files={"image": ("bag.png", PNG, "image/png")})
    assert response.status_code == 401


async def test_resign_storage_url(client, headers, storage):
    old_url = f"https://demo.supabase.co/storage/v1/object/sign/{SUPABASE_STORAGE_BUCKET}/products/1-abc.png?token=old"

    response = await client.post("/upload/image/sign", json={"url": old_url}, headers=headers["supplier"])

    assert response.status_code == 200
    assert storage.signed[0][0] == "products/1-abc.png"
    assert response.json()["data"]["url"].endswith("token=t1")


async def test_resign_public_url(client, headers, storage):
    public_url = f"https://demo.supabase.co/storage/v1/object/public/{SUPABASE_STORAGE_BUCKET}/avatars/me.png"

    response = await client.post("/upload/image/sign", json={"url": public_url}, headers=headers["manufacturer"])

    assert response.status_code == 200
    assert storage.signed[0][0] == "avatars/me.png"


@pytest.mark.parametrize("url", [
    "data:image/png;base64,AAAA",
    "https://img.example.com/a.png",
    "https://demo.supabase.co/storage/v1/object/sign/some-other-bucket/a.png?token=x",
])
async def test_resign_refuses_foreign_urls(client, headers, storage, url):
    response = await client.post("/upload/image/sign", json={"url": url}, headers=headers["supplier"])

    assert response.status_code == 400
    assert storage.signed == []


class UnreadableFile:
    def read(self, *args):
        raise AssertionError("body should not be read")


async def test_declared_size_is_checked_before_reading(storage):
    upload = UploadFile(
        UnreadableFile(),
        size=MAX_UPLOAD_BYTES + 1,
        filename="big.png",
        headers=Headers({"content-type": "image/png"}),
    )

    with pytest.raises(ValidationError) as exc_info:
        await upload_helpers.read_image(upload)

    assert "2MB" in exc_info.value.detail
