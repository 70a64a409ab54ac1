"""
beers/uploader.py -- Beer image hosting via the Cloudinary upload API.

The API receives the file from the SPA as multipart/form-data and forwards it
to Cloudinary with a signed upload request. Cloudinary returns the hosted URL,
which becomes the beer's image_url.

Signed uploads:
  signature = sha1("folder=...&public_id=...&timestamp=..." + api_secret)
  Parameters are sorted by name and joined with "&"; api_key, file and
  signature itself are not part of the signed string.

The image keeps its original filename stem as public_id, inside the
configured folder. Only jpg and png images are accepted; anything else is
rejected before any network call.

Failures:
  Network errors, non-2xx responses and responses without a URL raise
  ImageUploadError. The route layer turns that into a generic 500.
"""

import hashlib
import logging
import time
from pathlib import PurePath
from typing import Optional

import requests

from core.errors import ValidationError

logger = logging.getLogger("brewhouse.uploader")

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"
ALLOWED_FORMATS = ("jpg", "png")

# jpeg is the same format as jpg; Cloudinary reports both as "jpg".
_EXTENSION_ALIASES = {"jpeg": "jpg"}


class ImageUploadError(Exception):
    """The image host could not store the file."""


def image_format(filename: str) -> Optional[str]:
    """Return the normalized format of `filename` from its extension, or None."""
    suffix = PurePath(filename or "").suffix.lower().lstrip(".")
    if not suffix:
        return None
    return _EXTENSION_ALIASES.get(suffix, suffix)


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Return the Cloudinary signature for `params`."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()  # nosec B324 -- mandated by the API


class CloudinaryUploader:
    """Upload images to one Cloudinary folder.

    Usage:
        uploader = CloudinaryUploader("demo", "key", "secret", folder="thing-gallery")
        url = uploader.upload("punk-ipa.png", data)
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "thing-gallery",
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ) -> None:
        self.url = CLOUDINARY_UPLOAD_URL.format(cloud_name=cloud_name)
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout
        # max_redirects=3 -- a known public API, protects against redirect chains.
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    def upload(self, filename: str, data: bytes) -> str:
        """Upload `data` as `filename` and return the hosted HTTPS URL.

        Raises ValidationError for a disallowed format, ImageUploadError on
        any transport or API failure.
        """
        fmt = image_format(filename)
        if fmt not in ALLOWED_FORMATS:
            raise ValidationError.from_fields(
                "beer", {"image": f"Image file format {fmt or 'unknown'} not allowed. Use jpg or png."}
            )

        params = {
            "folder": self.folder,
            "public_id": PurePath(filename).stem,
            "timestamp": str(int(time.time())),
        }
        payload = dict(params, api_key=self.api_key, signature=sign_params(params, self.api_secret))
        try:
            resp = self._session.post(
                self.url,
                data=payload,
                files={"file": (filename, data)},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Image upload failed for %s: %s", filename, exc)
            raise ImageUploadError(str(exc)) from exc

        url = body.get("secure_url") or body.get("url")
        if not url:
            logger.warning("Image upload for %s returned no URL", filename)
            raise ImageUploadError("upload response did not include a URL")
        logger.info("Image uploaded: %s", url)
        return url

    def close(self) -> None:
        self._session.close()
