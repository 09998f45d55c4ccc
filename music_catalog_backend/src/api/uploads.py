"""
Upload collaborators: cover images go to Cloudinary, audio goes to Firebase Storage.

Both are called over their REST APIs with a shared httpx.AsyncClient and return a
publicly fetchable URL. Any failure surfaces as UploadFailedError so the calling
request aborts before touching the database.

Configuration (environment):
- CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET, CLOUDINARY_FOLDER
- FIREBASE_STORAGE_BUCKET, FIREBASE_STORAGE_TOKEN (optional bearer token), FIREBASE_STORAGE_FOLDER
- MAX_UPLOAD_BYTES
"""

from __future__ import annotations

import hashlib
import io
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Protocol
from urllib.parse import quote

import httpx
from mutagen import File as mutagen_file
from mutagen import MutagenError

from src.api.errors import UploadFailedError, ValidationFailedError

logger = logging.getLogger(__name__)

_MAX_FILE_BYTES_DEFAULT = 50 * 1024 * 1024  # 50MB

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"
FIREBASE_STORAGE_API_BASE = "https://firebasestorage.googleapis.com/v0"


@dataclass(frozen=True)
class UploadedFile:
    """An in-memory file received from a multipart request."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class ImageUploader(Protocol):
    async def upload(self, file: UploadedFile) -> str: ...


class AudioUploader(Protocol):
    async def upload(self, file: UploadedFile) -> str: ...


def max_file_bytes() -> int:
    try:
        return int(os.getenv("MAX_UPLOAD_BYTES", str(_MAX_FILE_BYTES_DEFAULT)))
    except ValueError:
        return _MAX_FILE_BYTES_DEFAULT


def sanitize_filename(name: str, fallback: str = "upload") -> str:
    # Keep it simple and safe: letters, numbers, dot, dash, underscore.
    name = name.strip().replace("\\", "_").replace("/", "_")
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name)
    return name or fallback


def _validate_upload(file: UploadedFile, *, kind: str, accepted_prefix: str) -> None:
    content_type = (file.content_type or "").lower()
    if content_type and not content_type.startswith(accepted_prefix) and content_type != "application/octet-stream":
        raise ValidationFailedError(f"Invalid content type for {kind}; expected {accepted_prefix}*.")
    if file.size == 0:
        raise ValidationFailedError(f"Empty {kind} file.")
    if file.size > max_file_bytes():
        raise UploadFailedError(f"{kind.capitalize()} file too large.", status_code=413)


# PUBLIC_INTERFACE
def validate_audio(file: UploadedFile) -> None:
    """Reject non-audio, empty, or oversized audio uploads before contacting a provider."""
    _validate_upload(file, kind="audio", accepted_prefix="audio/")


# PUBLIC_INTERFACE
def validate_image(file: UploadedFile) -> None:
    """Reject non-image, empty, or oversized image uploads before contacting a provider."""
    _validate_upload(file, kind="image", accepted_prefix="image/")


# PUBLIC_INTERFACE
def probe_duration_seconds(file: UploadedFile) -> Optional[int]:
    """
    Read the audio duration with mutagen.

    Returns None when the format is unrecognized or carries no length.
    """
    try:
        audio = mutagen_file(io.BytesIO(file.content))
    except (MutagenError, ValueError, EOFError, OSError) as exc:
        logger.info("duration_probe_failed: filename=%s exc=%s", file.filename, exc.__class__.__name__)
        return None
    if audio is None or audio.info is None:
        return None
    length = getattr(audio.info, "length", None)
    if not length:
        return None
    return int(round(length))


def cloudinary_signature(params: Dict[str, object], api_secret: str) -> str:
    """SHA-1 over the sorted `key=value&...` params followed by the API secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryImageUploader:
    """Signed upload to Cloudinary's image endpoint; returns `secure_url`."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> None:
        self._client = client
        self.cloud_name = cloud_name or os.getenv("CLOUDINARY_CLOUD_NAME", "")
        self.api_key = api_key or os.getenv("CLOUDINARY_API_KEY", "")
        self.api_secret = api_secret or os.getenv("CLOUDINARY_API_SECRET", "")
        self.folder = folder or os.getenv("CLOUDINARY_FOLDER", "covers")

    async def upload(self, file: UploadedFile) -> str:
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise UploadFailedError("Image upload is not configured.", status_code=503)

        params: Dict[str, object] = {"folder": self.folder, "timestamp": int(time.time())}
        data = {
            **{k: str(v) for k, v in params.items()},
            "api_key": self.api_key,
            "signature": cloudinary_signature(params, self.api_secret),
        }
        files = {"file": (sanitize_filename(file.filename, "cover"), file.content, file.content_type)}
        url = f"{CLOUDINARY_API_BASE}/{self.cloud_name}/image/upload"

        try:
            response = await self._client.post(url, data=data, files=files)
            response.raise_for_status()
            secure_url = response.json()["secure_url"]
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("image_upload_failed: filename=%s exc=%s", file.filename, exc.__class__.__name__)
            raise UploadFailedError("Failed to upload the image.") from exc

        logger.info("image_uploaded: filename=%s size=%d", file.filename, file.size)
        return secure_url


class FirebaseAudioUploader:
    """
    Media upload to a Firebase Storage bucket.

    The returned URL embeds the object's download token and does not expire.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        bucket: Optional[str] = None,
        token: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> None:
        self._client = client
        self.bucket = bucket or os.getenv("FIREBASE_STORAGE_BUCKET", "")
        self.token = token or os.getenv("FIREBASE_STORAGE_TOKEN", "")
        self.folder = folder or os.getenv("FIREBASE_STORAGE_FOLDER", "tracks")

    def download_url(self, object_name: str, download_token: str) -> str:
        return (
            f"{FIREBASE_STORAGE_API_BASE}/b/{self.bucket}/o/{quote(object_name, safe='')}"
            f"?alt=media&token={download_token}"
        )

    async def upload(self, file: UploadedFile) -> str:
        if not self.bucket:
            raise UploadFailedError("Audio upload is not configured.", status_code=503)

        object_name = f"{self.folder}/{uuid.uuid4().hex}_{sanitize_filename(file.filename, 'track')}"
        headers = {"Content-Type": file.content_type or "application/octet-stream"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._client.post(
                f"{FIREBASE_STORAGE_API_BASE}/b/{self.bucket}/o",
                params={"uploadType": "media", "name": object_name},
                content=file.content,
                headers=headers,
            )
            response.raise_for_status()
            body = response.json()
            download_token = body["downloadTokens"].split(",")[0]
        except (httpx.HTTPError, KeyError, ValueError, AttributeError) as exc:
            logger.warning("audio_upload_failed: filename=%s exc=%s", file.filename, exc.__class__.__name__)
            raise UploadFailedError("Failed to upload music file to bucket.") from exc

        logger.info("audio_uploaded: object=%s size=%d", object_name, file.size)
        return self.download_url(body.get("name", object_name), download_token)
