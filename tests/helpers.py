# tests/helpers.py
import dataclasses
import uuid

from caretoshare.core.errors import InvalidInput, UpstreamFailure
from caretoshare.services.files import StoredObject
from caretoshare.services.users import ExternalIdentity


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class FakeIdentity:
    """Google userinfo stand-in: access token -> profile registered by the test."""

    def __init__(self):
        self.profiles: dict[str, ExternalIdentity] = {}

    def register(self, access_token: str, identity: ExternalIdentity) -> None:
        self.profiles[access_token] = identity

    def clear(self) -> None:
        self.profiles.clear()

    def fetch_identity(self, access_token: str, refresh_token: str | None = None) -> ExternalIdentity:
        identity = self.profiles.get(access_token)
        if identity is None:
            raise UpstreamFailure("Google identity access expired. Please re-login.", requires_reauth=True)
        return dataclasses.replace(identity, access_token=access_token, refresh_token=refresh_token)


# wired in as the identity client by conftest; emptied before every test
identities = FakeIdentity()


def login(client, name: str = "Test User", email: str | None = None, sub: str | None = None) -> dict:
    """Google login through the fake userinfo endpoint; returns {"id", "token", "username"}."""
    sub = sub or f"google-{uuid.uuid4().hex[:10]}"
    email = email or f"{sub}@test.com"
    access_token = f"ya29.{sub}"
    identities.register(access_token, ExternalIdentity(subject=sub, email=email, name=name))
    r = client.post(
        "/auth/google/token",
        json={
            "access_token": access_token,
            "user_info": {"sub": sub, "email": email, "name": name, "picture": None},
        },
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    return {
        "id": data["user"]["id"],
        "token": data["access_token"],
        "username": data["user"]["username"],
        "headers": auth_header(data["access_token"]),
    }


def create_class(client, user: dict, name: str = "Data Structures", **extra) -> dict:
    r = client.post("/classes", json={"name": name, **extra}, headers=user["headers"])
    assert r.status_code == 201, r.text
    return r.json()["data"]


def upload(client, user: dict, *, title: str = "Notes", filename: str = "notes.pdf",
           visibility: str = "public", class_id: str | None = None, content: bytes = b"%PDF-1.4 test") -> dict:
    form = {"title": title, "visibility": visibility}
    if class_id:
        form["class_id"] = class_id
    r = client.post(
        "/files/upload",
        data=form,
        files={"file": (filename, content, "application/pdf")},
        headers=user["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


class FakeStorage:
    """In-memory stand-in for Google Drive."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.delete_tokens: list[str] = []
        self.fail_delete = False

    def upload(self, data: bytes, filename: str, mime_type: str, token: str) -> StoredObject:
        drive_id = f"drive-{uuid.uuid4().hex[:12]}"
        self.objects[drive_id] = data
        return StoredObject(
            drive_id=drive_id,
            download_url=f"https://drive.test/{drive_id}/download",
            web_view_link=f"https://drive.test/{drive_id}/view",
            thumbnail_url=None,
            size=len(data),
        )

    def delete(self, drive_id: str, token: str) -> None:
        self.delete_tokens.append(token)
        if self.fail_delete:
            raise UpstreamFailure("Drive request failed")
        self.objects.pop(drive_id, None)
        self.deleted.append(drive_id)


class FakePhotos:
    """Google Photos stand-in serving one fixed item."""

    PHOTO_URL = "https://lh3.googleusercontent.com/item-1=d"
    CONTENT = b"\xff\xd8\xff fake jpeg"

    def __init__(self):
        self.fetched: list[str] = []

    def list_photos(self, token: str, *, page_size: int = 50, page_token: str | None = None) -> dict:
        return {
            "photos": [{"id": "item-1", "filename": "beach.jpg", "mime_type": "image/jpeg", "full": self.PHOTO_URL}],
            "next_page_token": None,
        }

    def fetch_bytes(self, url: str, *, max_bytes: int | None = None) -> bytes:
        self.fetched.append(url)
        if max_bytes is not None and len(self.CONTENT) > max_bytes:
            raise InvalidInput("File exceeds the upload size limit")
        return self.CONTENT
