"""Daily.co video room client.

Creates private 1:1 rooms for mentorship sessions and issues per-participant
meeting tokens. Room names are derived from the session id so lookups and
creation are idempotent across retries.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from mentorbook.config import settings

logger = logging.getLogger(__name__)

ROOM_NAME_PREFIX = "mentor-session-"


class VideoProviderError(RuntimeError):
    """Raised when the video provider responds with an error or is unreachable."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


def room_name_for_session(session_id: int) -> str:
    return f"{ROOM_NAME_PREFIX}{session_id}"


class DailyClient:
    """HTTP client for the Daily.co REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.daily.co/v1",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_seconds: float = 0.25,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._backoff_seconds = backoff_seconds
        self._transport = transport

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        """Authenticated request with bounded retry on transport errors and 5xx."""
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        last_error: VideoProviderError | None = None
        for attempt in range(self._max_retries + 1):
            if attempt and self._backoff_seconds:
                time.sleep(self._backoff_seconds * attempt)
            try:
                with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                    response = client.request(method, url, headers=headers, json=json_body)
            except httpx.TransportError as exc:
                logger.warning(
                    "Daily API unreachable for %s %s (attempt %s): %s",
                    method,
                    path,
                    attempt + 1,
                    exc,
                )
                last_error = VideoProviderError(f"Daily API unreachable: {exc}")
                continue

            if response.status_code == 404 and allow_not_found:
                return None

            if response.status_code >= 500:
                logger.warning(
                    "Daily API %s %s returned %s (attempt %s)",
                    method,
                    path,
                    response.status_code,
                    attempt + 1,
                )
                last_error = VideoProviderError(
                    "Daily API server error",
                    status_code=response.status_code,
                    details={"raw": response.text[:500]},
                )
                continue

            if response.status_code >= 400:
                try:
                    error_body = response.json()
                except ValueError:
                    error_body = {"raw": response.text[:500]}
                raise VideoProviderError(
                    f"Daily API error {response.status_code}",
                    status_code=response.status_code,
                    details=error_body,
                )

            try:
                return response.json()
            except ValueError as exc:
                raise VideoProviderError(
                    "Daily API returned invalid JSON",
                    status_code=response.status_code,
                ) from exc

        assert last_error is not None
        raise last_error

    def create_room(
        self,
        name: str,
        *,
        expiry: int,
        max_participants: int = 2,
    ) -> dict[str, Any]:
        """Create a private room; ``expiry`` is a unix timestamp."""
        body = {
            "name": name,
            "privacy": "private",
            "properties": {
                "exp": expiry,
                "max_participants": max_participants,
                "enable_chat": True,
                "enable_screenshare": True,
                "enable_knocking": False,
                "start_video_off": False,
                "start_audio_off": False,
                "eject_at_room_exp": True,
            },
        }
        room = self._request("POST", "/rooms", json_body=body)
        if not room or not room.get("url"):
            raise VideoProviderError("Daily room creation returned no url")
        logger.info("Daily room created: %s", name)
        return room

    def get_room(self, name: str) -> Optional[dict[str, Any]]:
        return self._request("GET", f"/rooms/{name}", allow_not_found=True)

    def ensure_room(self, name: str, *, expiry: int, max_participants: int = 2) -> str:
        """Return the room url, creating the room only when it does not exist."""
        room = self.get_room(name)
        if room and room.get("url"):
            return room["url"]
        return self.create_room(name, expiry=expiry, max_participants=max_participants)["url"]

    def create_meeting_token(
        self,
        *,
        room_name: str,
        user_name: str,
        is_owner: bool,
        expiry: int,
    ) -> str:
        body = {
            "properties": {
                "room_name": room_name,
                "user_name": user_name,
                "is_owner": is_owner,
                "exp": expiry,
                "enable_screenshare": True,
                "start_video_off": False,
                "start_audio_off": False,
            }
        }
        data = self._request("POST", "/meeting-tokens", json_body=body)
        token = (data or {}).get("token")
        if not isinstance(token, str) or not token:
            raise VideoProviderError("Daily meeting token response had no token")
        return token


def get_video_client() -> Optional[DailyClient]:
    """Configured client, or None when video rooms are disabled."""
    if not settings.DAILY_API_KEY:
        logger.warning("DAILY_API_KEY not configured - video rooms disabled")
        return None
    return DailyClient(
        api_key=settings.DAILY_API_KEY,
        base_url=settings.DAILY_API_URL,
        timeout=settings.VIDEO_REQUEST_TIMEOUT_SECONDS,
        max_retries=settings.VIDEO_MAX_RETRIES,
    )
