"""
services/google.py

Thin httpx clients for the Google collaborators.

- GoogleIdentityClient : userinfo lookup for a delegated access token
- DriveStorage         : upload / share / delete a file in the user's Drive
- PhotosClient         : list the user's Google Photos, fetch item bytes
                         (Google content hosts only, size-capped)

Every httpx failure is translated to UpstreamFailure; a 401/403 from
Google means the delegated token expired or lacks scope, so the client
is told to re-authenticate (requires_reauth=True).

Routers get these through dependencies in caretoshare.core.deps so tests
can swap them out.
"""

import json
import logging
import uuid

import httpx

from caretoshare.core.config import settings
from caretoshare.core.errors import InvalidInput, UpstreamFailure
from caretoshare.services.files import StoredObject
from caretoshare.services.users import ExternalIdentity

logger = logging.getLogger(__name__)


def _raise_upstream(exc: httpx.HTTPError, what: str) -> None:
    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code in (401, 403):
        logger.warning("%s rejected delegated token: %s", what, exc.response.status_code)
        raise UpstreamFailure(f"Google {what} access expired. Please re-login.", requires_reauth=True) from exc
    logger.error("%s request failed: %s", what, exc)
    raise UpstreamFailure(f"Google {what} request failed") from exc


def _client() -> httpx.Client:
    return httpx.Client(timeout=settings.UPSTREAM_TIMEOUT_SECONDS)


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class GoogleIdentityClient:
    def __init__(self, userinfo_url: str | None = None):
        self.userinfo_url = userinfo_url or settings.GOOGLE_USERINFO_URL

    def fetch_identity(self, access_token: str, refresh_token: str | None = None) -> ExternalIdentity:
        try:
            with _client() as client:
                response = client.get(self.userinfo_url, headers=_bearer(access_token))
                response.raise_for_status()
                info = response.json()
        except httpx.HTTPError as e:
            _raise_upstream(e, "identity")

        if not info.get("sub") or not info.get("email"):
            raise UpstreamFailure("Google identity response is missing sub/email")

        return ExternalIdentity(
            subject=info["sub"],
            email=info["email"],
            name=info.get("name") or info["email"],
            avatar=info.get("picture"),
            access_token=access_token,
            refresh_token=refresh_token,
        )


class DriveStorage:
    FILE_FIELDS = "id,size,webViewLink,webContentLink,thumbnailLink"

    def __init__(self, api_url: str | None = None, upload_url: str | None = None):
        self.api_url = (api_url or settings.GOOGLE_DRIVE_API_URL).rstrip("/")
        self.upload_url = (upload_url or settings.GOOGLE_DRIVE_UPLOAD_URL).rstrip("/")

    @staticmethod
    def _multipart_body(metadata: dict, data: bytes, mime_type: str) -> tuple[bytes, str]:
        boundary = uuid.uuid4().hex
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            json.dumps(metadata).encode(),
            f"\r\n--{boundary}\r\n".encode(),
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            data,
            f"\r\n--{boundary}--".encode(),
        ])
        return body, f"multipart/related; boundary={boundary}"

    def upload(self, data: bytes, filename: str, mime_type: str, token: str) -> StoredObject:
        body, content_type = self._multipart_body({"name": filename, "mimeType": mime_type}, data, mime_type)
        headers = {**_bearer(token), "Content-Type": content_type}

        try:
            with _client() as client:
                created = client.post(
                    f"{self.upload_url}/files",
                    params={"uploadType": "multipart", "fields": self.FILE_FIELDS},
                    content=body,
                    headers=headers,
                )
                created.raise_for_status()
                drive_id = created.json()["id"]

                # anyone with the link can read
                shared = client.post(
                    f"{self.api_url}/files/{drive_id}/permissions",
                    json={"role": "reader", "type": "anyone"},
                    headers=_bearer(token),
                )
                shared.raise_for_status()

                info = client.get(
                    f"{self.api_url}/files/{drive_id}",
                    params={"fields": self.FILE_FIELDS},
                    headers=_bearer(token),
                )
                info.raise_for_status()
                meta = info.json()
        except httpx.HTTPError as e:
            _raise_upstream(e, "Drive")

        logger.info("drive upload ok id=%s name=%s", drive_id, filename)
        return StoredObject(
            drive_id=drive_id,
            download_url=meta.get("webContentLink") or f"https://drive.google.com/uc?export=download&id={drive_id}",
            web_view_link=meta.get("webViewLink"),
            thumbnail_url=meta.get("thumbnailLink"),
            size=int(meta.get("size") or len(data)),
        )

    def delete(self, drive_id: str, token: str) -> None:
        try:
            with _client() as client:
                response = client.delete(f"{self.api_url}/files/{drive_id}", headers=_bearer(token))
                response.raise_for_status()
        except httpx.HTTPError as e:
            _raise_upstream(e, "Drive")


class PhotosClient:
    def __init__(self, api_url: str | None = None):
        self.api_url = (api_url or settings.GOOGLE_PHOTOS_API_URL).rstrip("/")

    @staticmethod
    def _to_photo(item: dict) -> dict:
        meta = item.get("mediaMetadata") or {}
        base_url = item.get("baseUrl", "")
        mime_type = item.get("mimeType") or ""
        return {
            "id": item.get("id"),
            "filename": item.get("filename"),
            "mime_type": mime_type,
            "description": item.get("description") or "",
            "creation_time": meta.get("creationTime"),
            "width": meta.get("width"),
            "height": meta.get("height"),
            "thumbnail": f"{base_url}=w200-h200",
            "medium": f"{base_url}=w600-h600",
            "full": f"{base_url}=d",
            "is_video": mime_type.startswith("video/"),
        }

    def list_photos(self, token: str, *, page_size: int = 50, page_token: str | None = None) -> dict:
        params = {"pageSize": page_size}
        if page_token:
            params["pageToken"] = page_token
        try:
            with _client() as client:
                response = client.get(f"{self.api_url}/mediaItems", params=params, headers=_bearer(token))
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            _raise_upstream(e, "Photos")

        return {
            "photos": [self._to_photo(item) for item in data.get("mediaItems", [])],
            "next_page_token": data.get("nextPageToken"),
        }

    @staticmethod
    def _check_content_url(url: str) -> None:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidInput("Invalid photo URL") from e
        host = (parsed.host or "").lower()
        allowed = any(
            host == suffix or host.endswith("." + suffix)
            for suffix in settings.GOOGLE_PHOTOS_CONTENT_HOSTS
        )
        if parsed.scheme != "https" or not allowed:
            raise InvalidInput("Photo URL must point to Google Photos content")

    def fetch_bytes(self, url: str, *, max_bytes: int | None = None) -> bytes:
        """Downloads a Photos item; redirects are not followed and the body is capped at max_bytes."""
        self._check_content_url(url)
        limit = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES

        chunks = []
        received = 0
        try:
            with _client() as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    for chunk in response.iter_bytes():
                        received += len(chunk)
                        if received > limit:
                            logger.warning("photo download exceeded %s bytes", limit)
                            raise InvalidInput("File exceeds the upload size limit")
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            _raise_upstream(e, "Photos")
        return b"".join(chunks)
