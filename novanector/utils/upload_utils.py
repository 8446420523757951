# novanector/utils/upload_utils.py
import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from starlette.datastructures import FormData, UploadFile

from novanector.core.config import settings
from novanector.core.error_messages import ErrorResponses

logger = logging.getLogger(__name__)

PROFILE_PICTURE_FIELD = "profilePicture"
PROFILE_PICTURE_SUBDIR = "profile-pictures"
PUBLIC_PREFIX = f"/uploads/{PROFILE_PICTURE_SUBDIR}"

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tiff"}

MAX_BASENAME_LENGTH = 20


@dataclass
class PendingUpload:
    """An image that passed validation but has not been written yet."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def is_allowed_image(filename: str, content_type: Optional[str]) -> bool:
    extension = os.path.splitext(filename or "")[1].lower()
    return (content_type or "").lower() in ALLOWED_MIME_TYPES and extension in ALLOWED_EXTENSIONS


def generate_filename(original_filename: str) -> str:
    """``<base>-<epochMillis>-<randomHex><.ext>`` with a sanitized, truncated base."""
    base, extension = os.path.splitext(original_filename)
    base = re.sub(r"[^a-zA-Z0-9]", "_", base)[:MAX_BASENAME_LENGTH]
    timestamp = int(time.time() * 1000)
    random_suffix = secrets.token_hex(8)
    return f"{base}-{timestamp}-{random_suffix}{extension.lower()}"


def extract_filename_from_url(url: str) -> Optional[str]:
    if not url:
        return None
    path = urlparse(url).path
    return path.rsplit("/", 1)[-1] or None


async def read_profile_picture(form: FormData, max_size: int = None) -> Optional[PendingUpload]:
    """Pull the single profile picture out of a parsed form.

    Raises the matching upload ``APIError`` for files under another field,
    more than one file, a disallowed type or an oversized file. Returns None
    when no file was sent.
    """
    max_size = max_size or settings.MAX_UPLOAD_SIZE
    files = []
    for field, value in form.multi_items():
        # browsers send an empty, nameless part for an untouched file input
        if not isinstance(value, UploadFile) or not value.filename:
            continue
        if field != PROFILE_PICTURE_FIELD:
            raise ErrorResponses.UNEXPECTED_FIELD
        files.append(value)

    if not files:
        return None
    if len(files) > 1:
        raise ErrorResponses.TOO_MANY_FILES

    upload = files[0]
    if not is_allowed_image(upload.filename, upload.content_type):
        raise ErrorResponses.INVALID_FILE_TYPE

    content = await upload.read(max_size + 1)
    if len(content) > max_size:
        raise ErrorResponses.FILE_TOO_LARGE

    return PendingUpload(
        filename=upload.filename,
        content_type=upload.content_type,
        content=content,
    )


class ProfilePictureStore:
    """Local disk storage for profile pictures served under PUBLIC_PREFIX."""

    def __init__(self, directory: Path, public_prefix: str = PUBLIC_PREFIX):
        self.directory = Path(directory)
        self.public_prefix = public_prefix.rstrip("/")

    def ensure_directory(self):
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        return self.directory / filename

    def public_url(self, filename: str, base_url: str) -> str:
        parsed = urlparse(base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"An absolute http(s) base_url is required, got {base_url!r}")
        return f"{base_url.rstrip('/')}{self.public_prefix}/{filename}"

    def save(self, upload: PendingUpload, base_url: str) -> str:
        """Write the file and return its public URL."""
        filename = generate_filename(upload.filename)
        url = self.public_url(filename, base_url)
        self.path_for(filename).write_bytes(upload.content)
        logger.info("Stored profile picture %s (%d bytes)", filename, upload.size)
        return url

    def owns(self, url: str) -> bool:
        if not url:
            return False
        return urlparse(url).path.startswith(self.public_prefix + "/")

    def delete(self, url: str) -> bool:
        """Remove a file previously stored here; other URLs are left alone."""
        if not self.owns(url):
            return False
        filename = extract_filename_from_url(url)
        if not filename or Path(filename).name != filename:
            return False
        path = self.path_for(filename)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted profile picture %s", filename)
        return True


profile_picture_store = ProfilePictureStore(Path(settings.UPLOAD_ROOT) / PROFILE_PICTURE_SUBDIR)
