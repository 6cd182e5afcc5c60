"""
File index: upload, visibility rules, listings, delete, class cascade.
"""

import uuid

from caretoshare.core.config import settings
from caretoshare.models.file import File, FileCategory, FileVisibility
from caretoshare.models.user import User
from caretoshare.services.category import category_from_filename, parse_category_filter
from tests.helpers import create_class, login, upload


def test_category_inference():
    assert category_from_filename("Lecture1.PDF") == FileCategory.DOCUMENTS
    assert category_from_filename("slides.pptx") == FileCategory.PRESENTATIONS
    assert category_from_filename("photo.jpeg") == FileCategory.IMAGES
    assert category_from_filename("clip.mkv") == FileCategory.VIDEOS
    assert category_from_filename("backup.tar.gz") == FileCategory.ARCHIVES
    assert category_from_filename("Makefile") == FileCategory.OTHER
    assert parse_category_filter("all") is None
    assert parse_category_filter("images") == FileCategory.IMAGES


def test_upload_stores_drive_references(client, storage):
    owner = login(client, name="Owner")
    data = upload(client, owner, title="  Week 1  ", filename="week1.pdf")

    assert data["title"] == "Week 1"
    assert data["category"] == "documents"
    assert data["visibility"] == "public"
    assert data["class_id"] is None
    assert data["uploader"]["id"] == owner["id"]
    assert data["drive_id"] in storage.objects
    assert data["file_size"] == len(b"%PDF-1.4 test")
    assert data["download_url"].endswith("/download")


def test_upload_requires_title(client):
    owner = login(client, name="Owner")
    r = client.post(
        "/files/upload",
        data={"title": "   "},
        files={"file": ("a.pdf", b"x", "application/pdf")},
        headers=owner["headers"],
    )
    assert r.status_code == 400


def test_upload_requires_login(client):
    r = client.post("/files/upload", data={"title": "x"}, files={"file": ("a.pdf", b"x", "application/pdf")})
    assert r.status_code == 401


def test_public_and_private_file_access(client):
    owner = login(client, name="Owner")
    other = login(client, name="Other")
    public = upload(client, owner, title="Open")
    private = upload(client, owner, title="Mine only", visibility="private")

    assert client.get(f"/files/{public['id']}").status_code == 200

    assert client.get(f"/files/{private['id']}").status_code == 403
    assert client.get(f"/files/{private['id']}", headers=other["headers"]).status_code == 403
    r = client.get(f"/files/{private['id']}", headers=owner["headers"])
    assert r.status_code == 200
    assert r.json()["data"]["views"] == 1

    assert client.get(f"/files/{uuid.uuid4()}").status_code == 404


def test_private_files_never_listed(client):
    owner = login(client, name="Owner")
    public = upload(client, owner, title="Shared notes")
    upload(client, owner, title="Shared secret", visibility="private")

    for path in ("/files/recent", "/files/popular", "/files/category"):
        ids = [f["id"] for f in client.get(path).json()["data"]]
        assert ids == [public["id"]], path

    found = client.get("/search", params={"q": "shared", "type": "files"}).json()["data"]["files"]
    assert [f["id"] for f in found] == [public["id"]]


def test_class_files_members_only(client):
    owner = login(client, name="Owner")
    member = login(client, name="Member")
    outsider = login(client, name="Outsider")
    klass = create_class(client, owner)
    client.post(f"/classes/{klass['id']}/join", headers=member["headers"])

    shared = upload(client, member, title="Class notes", visibility="class", class_id=klass["id"])
    assert shared["class_id"] == klass["id"]

    assert client.get(f"/files/{shared['id']}", headers=owner["headers"]).status_code == 200
    assert client.get(f"/files/{shared['id']}", headers=outsider["headers"]).status_code == 403
    assert client.get(f"/files/{shared['id']}").status_code == 403

    listing = client.get(f"/classes/{klass['id']}/files", headers=member["headers"])
    assert listing.status_code == 200
    assert [f["id"] for f in listing.json()["data"]] == [shared["id"]]
    assert client.get(f"/classes/{klass['id']}/files", headers=outsider["headers"]).status_code == 403

    detail = client.get(f"/classes/{klass['id']}", headers=owner["headers"]).json()["data"]
    assert detail["file_count"] == 1
    assert [f["id"] for f in detail["files"]] == [shared["id"]]

    # class files stay out of public listings
    assert client.get("/files/recent").json()["data"] == []


def test_class_upload_requires_membership(client, storage):
    owner = login(client, name="Owner")
    outsider = login(client, name="Outsider")
    klass = create_class(client, owner)

    r = client.post(
        "/files/upload",
        data={"title": "Sneaky", "visibility": "class", "class_id": klass["id"]},
        files={"file": ("a.pdf", b"x", "application/pdf")},
        headers=outsider["headers"],
    )
    assert r.status_code == 403
    assert storage.objects == {}

    no_class = client.post(
        "/files/upload",
        data={"title": "Lost", "visibility": "class"},
        files={"file": ("a.pdf", b"x", "application/pdf")},
        headers=owner["headers"],
    )
    assert no_class.status_code == 400
    assert storage.objects == {}


def test_deleting_class_makes_its_files_public(client, db):
    owner = login(client, name="Owner")
    klass = create_class(client, owner)
    first = upload(client, owner, title="One", visibility="class", class_id=klass["id"])
    second = upload(client, owner, title="Two", visibility="class", class_id=klass["id"])

    r = client.delete(f"/classes/{klass['id']}", headers=owner["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["data"]["files_made_public"] == 2

    for f in (first, second):
        row = db.get(File, uuid.UUID(f["id"]))
        assert row.visibility == FileVisibility.PUBLIC
        assert row.class_id is None

    remaining = db.query(File).filter(File.class_id == uuid.UUID(klass["id"])).count()
    assert remaining == 0
    assert {f["id"] for f in client.get("/files/recent").json()["data"]} == {first["id"], second["id"]}


def test_category_browse_and_sort(client):
    owner = login(client, name="Owner")
    pdf = upload(client, owner, title="Beta", filename="b.pdf")
    img = upload(client, owner, title="Alpha", filename="a.png")

    images = client.get("/files/category", params={"category": "images"}).json()["data"]
    assert [f["id"] for f in images] == [img["id"]]

    by_name = client.get("/files/category", params={"category": "all", "sort": "name"}).json()["data"]
    assert [f["id"] for f in by_name] == [img["id"], pdf["id"]]

    assert client.get("/files/category", params={"category": "music"}).status_code == 400


def test_download_counter_and_popular(client):
    owner = login(client, name="Owner")
    quiet = upload(client, owner, title="Quiet")
    hit = upload(client, owner, title="Hit")

    for _ in range(3):
        r = client.post(f"/files/{hit['id']}/download")
        assert r.status_code == 200
    assert r.json()["data"]["downloads"] == 3

    popular = [f["id"] for f in client.get("/files/popular").json()["data"]]
    assert popular == [hit["id"], quiet["id"]]


def test_my_files_includes_every_visibility(client):
    owner = login(client, name="Owner")
    upload(client, owner, title="Public")
    upload(client, owner, title="Private", visibility="private")

    r = client.get("/files/my-files", headers=owner["headers"])
    assert r.status_code == 200
    data = r.json()["data"]
    assert len(data["files"]) == 2
    assert data["stats"] == {"total_files": 2, "total_downloads": 0, "total_views": 0}


def test_delete_file_owner_only(client, storage):
    owner = login(client, name="Owner")
    other = login(client, name="Other")
    f = upload(client, owner)

    assert client.delete(f"/files/{f['id']}", headers=other["headers"]).status_code == 403

    r = client.delete(f"/files/{f['id']}", headers=owner["headers"])
    assert r.status_code == 200, r.text
    assert storage.deleted == [f["drive_id"]]
    assert client.get(f"/files/{f['id']}").status_code == 404


def test_delete_file_survives_drive_failure(client, storage):
    owner = login(client, name="Owner")
    f = upload(client, owner)
    storage.fail_delete = True

    r = client.delete(f"/files/{f['id']}", headers=owner["headers"])
    assert r.status_code == 200
    assert client.get(f"/files/{f['id']}").status_code == 404


def test_share_photo_and_list_photos(client):
    owner = login(client, name="Owner")

    listing = client.get("/files/my-photos", headers=owner["headers"])
    assert listing.status_code == 200
    photo = listing.json()["data"]["photos"][0]

    r = client.post(
        "/files/share-photo",
        json={"photo_id": photo["id"], "photo_url": photo["full"], "filename": "beach.jpg", "mime_type": "image/jpeg"},
        headers=owner["headers"],
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["title"] == "beach"
    assert data["category"] == "images"


def test_share_photo_checks_class_before_fetching(client, storage, photos):
    owner = login(client, name="Owner")
    outsider = login(client, name="Outsider")
    klass = create_class(client, owner)

    r = client.post(
        "/files/share-photo",
        json={
            "photo_id": "item-1",
            "photo_url": photos.PHOTO_URL,
            "filename": "beach.jpg",
            "mime_type": "image/jpeg",
            "visibility": "class",
            "class_id": klass["id"],
        },
        headers=outsider["headers"],
    )
    assert r.status_code == 403
    assert photos.fetched == []
    assert storage.objects == {}


def test_share_photo_respects_upload_limit(client, storage, photos, monkeypatch):
    owner = login(client, name="Owner")
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 4)

    r = client.post(
        "/files/share-photo",
        json={"photo_id": "item-1", "photo_url": photos.PHOTO_URL, "filename": "beach.jpg", "mime_type": "image/jpeg"},
        headers=owner["headers"],
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "File exceeds the upload size limit"
    assert storage.objects == {}


def test_delete_file_falls_back_to_google_token_header(client, db, storage):
    owner = login(client, name="Owner")
    first = upload(client, owner, title="One")
    second = upload(client, owner, title="Two")

    user = db.get(User, uuid.UUID(owner["id"]))
    user.google_access_token = None
    db.commit()

    r = client.delete(f"/files/{first['id']}", headers={**owner["headers"], "X-Google-Token": "ya29.header"})
    assert r.status_code == 200, r.text
    assert storage.delete_tokens == ["ya29.header"]
    assert storage.deleted == [first["drive_id"]]

    # no token anywhere: metadata goes, Drive is left alone
    r = client.delete(f"/files/{second['id']}", headers=owner["headers"])
    assert r.status_code == 200
    assert storage.delete_tokens == ["ya29.header"]
    assert second["drive_id"] in storage.objects
