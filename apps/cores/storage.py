"""
Blob store used for payment proofs and deliverable files.

Files go through Django's default storage backend (local disk in
development, S3 or similar in production). Download links are signed
tokens served by `SignedFileView` until they expire.
"""
import logging
import mimetypes
import posixpath
import time
import uuid

from django.conf import settings
from django.core import signing
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.urls import reverse

logger = logging.getLogger(__name__)

SIGNING_SALT = "apps.cores.storage.signed-url"


def put(content: bytes, content_type: str, prefix: str = "uploads", extension: str = None) -> str:
    """
    Store raw bytes and return the storage path.
    Names are never user controlled; only the extension may be passed in.
    """
    extension = extension or mimetypes.guess_extension(content_type or "") or ""
    name = f"{prefix.strip('/')}/{int(time.time())}-{uuid.uuid4().hex[:8]}{extension}"
    path = default_storage.save(name, ContentFile(content))
    logger.info("Stored blob %s (%s, %d bytes)", path, content_type, len(content))
    return path


def get_signed_url(path: str, ttl: int = None) -> str:
    ttl = ttl or settings.SIGNED_URL_TTL_SECONDS
    token = signing.dumps(
        {"path": path, "exp": int(time.time()) + int(ttl)},
        salt=SIGNING_SALT,
    )
    return reverse("signed-file", kwargs={"token": token})


def resolve_signed_url(token: str):
    """
    Return the storage path for a signed token, or None when the token is
    tampered with or expired.
    """
    try:
        payload = signing.loads(token, salt=SIGNING_SALT)
    except signing.BadSignature:
        return None

    if payload.get("exp", 0) < int(time.time()):
        return None
    return payload.get("path")


def delete(path: str) -> None:
    if path and default_storage.exists(path):
        default_storage.delete(path)
        logger.info("Deleted blob %s", path)


def exists(path: str) -> bool:
    return bool(path) and default_storage.exists(path)


def is_within(path: str, prefix: str) -> bool:
    """
    True when `path` is a normalised storage path strictly below `prefix`.
    Rejects `..` segments, absolute paths and sibling prefixes.
    """
    if not path or posixpath.normpath(path) != path:
        return False
    return path.startswith(f"{prefix.strip('/')}/")
