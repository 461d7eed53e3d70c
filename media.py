"""
Media host adapter.

Uploads go through the Cloudinary SDK: a multipart file, a base64 data URI
or a remote URL becomes a durable ``secure_url``. Deletes are best-effort:
``delete_quietly`` logs failures instead of raising them.
"""

import os
from dataclasses import dataclass
from typing import Any, BinaryIO, Optional, Union

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

import settings
from exceptions import MediaError, MediaUploadError, ValidationError
from logger import log


@dataclass
class UploadedMedia:
    """What the media host gives back for one upload."""
    url: str
    media_type: str          # 'image' or 'video'
    public_id: Optional[str] = None


@dataclass
class UploadFileData:
    """A file received from a multipart form, ready to forward."""
    filename: str
    content_type: str
    stream: BinaryIO


MediaSource = Union[UploadFileData, str]


def check_upload(filename: str, content_type: Optional[str], size: Optional[int]) -> None:
    """Accept only image/video files within the size limit."""
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    allowed = settings.ALLOWED_MEDIA_EXTENSIONS
    mime_subtype = (content_type or "").split("/")[-1].lower()
    if ext not in allowed or not any(a in mime_subtype for a in allowed + ["quicktime"]):
        raise ValidationError("Images and Videos Only!")
    if size is not None and size > settings.MAX_UPLOAD_BYTES:
        raise ValidationError("File too large")


def form_source(upload: Any = None, media_url: Optional[str] = None) -> Optional[MediaSource]:
    """Pick the media of a create form: an uploaded file wins over a base64/URL string."""
    if upload is not None and getattr(upload, "filename", None):
        check_upload(upload.filename, upload.content_type, getattr(upload, "size", None))
        return UploadFileData(filename=upload.filename, content_type=upload.content_type, stream=upload.file)
    if media_url and media_url.strip():
        return media_url.strip()
    return None


def public_id_from_url(url: str, folder: str) -> str:
    """Derive the host's public id from a delivery URL: ``<folder>/<file name without extension>``."""
    name = url.rstrip("/").split("/")[-1].split(".")[0]
    return f"{folder}/{name}"


class MediaHost:
    """Thin wrapper over the Cloudinary SDK's uploader."""

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
    ):
        self.cloud_name = cloud_name or settings.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key or settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret or settings.CLOUDINARY_API_SECRET
        if self.configured:
            cloudinary.config(
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self.api_secret,
                secure=True,
            )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def upload(self, source: MediaSource, folder: str, resource_type: str = "auto") -> UploadedMedia:
        """Upload a file or a data URI / URL string into ``folder``."""
        if not self.configured:
            raise MediaUploadError("Media host is not configured")

        file = source.stream if isinstance(source, UploadFileData) else source
        try:
            result = cloudinary.uploader.upload(
                file,
                folder=folder,
                resource_type=resource_type,
                timeout=settings.MEDIA_TIMEOUT,
            )
        except cloudinary.exceptions.Error as e:
            log.error(f"Media upload to {folder} failed: {e}")
            raise MediaUploadError(f"Media upload failed: {e}")

        media_type = "video" if result.get("resource_type") == "video" else "image"
        log.info(f"Uploaded {media_type} to {folder}: {result.get('public_id')}")
        return UploadedMedia(url=result["secure_url"], media_type=media_type, public_id=result.get("public_id"))

    def destroy(self, public_id: str, resource_type: str = "image") -> None:
        if not self.configured:
            raise MediaError("Media host is not configured")
        result = cloudinary.uploader.destroy(public_id, resource_type=resource_type, invalidate=True)
        if result.get("result") not in ("ok", "not found"):
            raise MediaError(f"Media host could not delete {public_id}: {result.get('result')}")

    def delete_quietly(self, public_id: str, media_type: Optional[str] = None) -> bool:
        """Delete remote media, logging instead of raising. Returns True on success."""
        resource_type = "video" if media_type == "video" else "image"
        try:
            self.destroy(public_id, resource_type=resource_type)
        except (cloudinary.exceptions.Error, MediaError) as e:
            log.warning(f"Could not delete remote media {public_id}: {e}")
            return False
        log.info(f"Deleted remote media {public_id}")
        return True


_media_host: Optional[MediaHost] = None


def get_media_host() -> MediaHost:
    global _media_host
    if _media_host is None:
        _media_host = MediaHost()
    return _media_host
