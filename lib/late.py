# =============================================================================
# lib/late.py - Late Social Scheduling API Client
# =============================================================================
# Wraps https://getlate.dev/api/v1 for publishing character posts to
# connected social accounts.
#
# Usage:
#   client = LateClient(api_key)
#   profiles = client.list_profiles()
#   presign = client.presign_media("character.webp", "image/webp")
# =============================================================================

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

LATE_API_BASE = "https://getlate.dev/api/v1"
LATE_TIMEOUT_SECONDS = 30


class LateAPIError(Exception):
    """Raised when Late rejects a request or can't be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LateClient:
    """Minimal Late API client bound to one API key."""

    def __init__(self, api_key: str, base_url: str = LATE_API_BASE):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def request(
        self,
        method: str,
        endpoint: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an authenticated request and return the decoded JSON body.

        Raises:
            LateAPIError: On connection errors or non-2xx responses
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}

        try:
            with httpx.Client(timeout=LATE_TIMEOUT_SECONDS) as client:
                response = client.request(
                    method,
                    f"{self.base_url}{endpoint}",
                    headers=headers,
                    json=json,
                    params=clean_params or None,
                )
        except httpx.HTTPError as e:
            logger.error(f"Late API request failed: {e}")
            raise LateAPIError("Failed to connect to Late API") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            raise LateAPIError(
                message or f"API error: {response.status_code}",
                status_code=response.status_code,
            )

        return response.json()

    # -------------------------------------------------------------------------
    # Accounts / Profiles
    # -------------------------------------------------------------------------

    def list_profiles(self) -> list[dict[str, Any]]:
        return self.request("GET", "/profiles").get("profiles", [])

    def list_accounts(self, profile_id: str | None = None) -> list[dict[str, Any]]:
        data = self.request("GET", "/accounts", params={"profileId": profile_id})
        return data.get("accounts", [])

    # -------------------------------------------------------------------------
    # Queue
    # -------------------------------------------------------------------------

    def queue_slots(self, profile_id: str, queue_id: str | None = None, all_queues: bool = False) -> Any:
        params = {"profileId": profile_id, "queueId": queue_id}
        if all_queues:
            params["all"] = "true"
        return self.request("GET", "/queue/slots", params=params)

    def next_slot(self, profile_id: str, queue_id: str | None = None) -> Any:
        return self.request("GET", "/queue/next-slot", params={"profileId": profile_id, "queueId": queue_id})

    # -------------------------------------------------------------------------
    # Posts / Media
    # -------------------------------------------------------------------------

    def list_posts(self, profile_id: str | None = None, status: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
        data = self.request("GET", "/posts", params={"profileId": profile_id, "status": status, "limit": limit})
        return data.get("posts", [])

    def presign_media(self, filename: str, content_type: str) -> dict[str, str]:
        """Get an upload URL and the public URL the media will live at."""
        return self.request("POST", "/media/presign", json={"filename": filename, "contentType": content_type})

    def upload_media(self, upload_url: str, content: bytes, content_type: str) -> None:
        """PUT raw bytes to a presigned upload URL."""
        try:
            with httpx.Client(timeout=LATE_TIMEOUT_SECONDS) as client:
                response = client.put(upload_url, content=content, headers={"Content-Type": content_type})
        except httpx.HTTPError as e:
            raise LateAPIError("Failed to upload image to Late") from e

        if response.status_code >= 400:
            raise LateAPIError("Failed to upload image to Late", status_code=response.status_code)

    def create_post(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/posts", json=payload)


def fetch_remote_bytes(url: str) -> bytes:
    """Download an image referenced by URL (used before re-uploading to Late)."""
    try:
        with httpx.Client(timeout=LATE_TIMEOUT_SECONDS, follow_redirects=True) as client:
            response = client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as e:
        raise LateAPIError(f"Failed to fetch image: {e}") from e
