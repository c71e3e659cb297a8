"""
Avatar REST client (Qt-free).

Talks to the finance app's profile endpoints: upload the cropped PNG as a
multipart ``avatar`` field, delete the current avatar, and read the
current avatar URL.  The server returns avatars as base64 ``data:`` URLs,
which ``decode_data_url`` turns back into bytes for display.
"""

import base64
import binascii
import logging

import requests

from avatar_crop_tool.config import (
    AVATAR_ENDPOINT, PROFILE_ENDPOINT, AVATAR_FIELD, AVATAR_FILENAME,
    MAX_UPLOAD_BYTES, UPLOAD_TIMEOUT,
)
from avatar_crop_tool.settings import Settings

logger = logging.getLogger(__name__)


class AvatarUploadError(Exception):
    """Upload, delete or fetch against the avatar endpoint failed."""


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:<mime>;base64,<payload>`` URL into ``(mime, bytes)``."""
    if not url.startswith("data:") or "," not in url:
        raise ValueError("not a data URL")
    header, payload = url[5:].split(",", 1)
    parts = header.split(";")
    if "base64" not in parts[1:]:
        raise ValueError("only base64 data URLs are supported")
    mime = parts[0] or "text/plain"
    try:
        return mime, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e


class AvatarClient:
    """Thin wrapper over a ``requests.Session`` for the avatar endpoints."""

    def __init__(self, base_url: str, token: str | None = None,
                 timeout: float = UPLOAD_TIMEOUT, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AvatarClient | None":
        """Build a client from settings, or None when no API URL is configured."""
        url = settings.effective_api_url
        if not url:
            return None
        return cls(url, token=settings.api_token)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = self.base_url + path
        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise AvatarUploadError(f"{method} {path} timed out") from e
        except requests.exceptions.RequestException as e:
            raise AvatarUploadError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            detail = ""
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("message"):
                    detail = str(body["message"])
            except ValueError:
                detail = response.text[:200]
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, detail)
            message = f"Server returned {response.status_code}"
            if detail:
                message += f": {detail}"
            raise AvatarUploadError(message)

        try:
            data = response.json()
        except ValueError as e:
            raise AvatarUploadError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise AvatarUploadError(f"{method} {path} returned unexpected JSON")
        return data

    def upload_avatar(self, png: bytes) -> str:
        """Upload PNG bytes and return the new avatar URL."""
        if len(png) > MAX_UPLOAD_BYTES:
            raise AvatarUploadError(
                f"Avatar is {len(png)} bytes; the server accepts at most {MAX_UPLOAD_BYTES}"
            )
        files = {AVATAR_FIELD: (AVATAR_FILENAME, png, "image/png")}
        data = self._request("POST", AVATAR_ENDPOINT, files=files)
        url = data.get("avatarUrl")
        if not isinstance(url, str) or not url:
            raise AvatarUploadError("Upload response has no avatarUrl")
        logger.info("Uploaded avatar (%d bytes)", len(png))
        return url

    def delete_avatar(self) -> None:
        self._request("DELETE", AVATAR_ENDPOINT)
        logger.info("Deleted avatar")

    def fetch_avatar_url(self) -> str | None:
        """Return the current avatar URL, or None if the user has none."""
        data = self._request("GET", PROFILE_ENDPOINT)
        url = data.get("avatarUrl")
        return url if isinstance(url, str) and url else None
