# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
YouTube Data API gateway.

Each operation is charged a fixed number of quota units on success:

    channel_info      50  channels (snippet, statistics, contentDetails)
    channel_videos     3  channels + playlistItems + videos
    video_analytics    1  videos (statistics)
    video_tags         1  videos (snippet)

The key is sent as the X-goog-api-key header.
"""

import logging
from typing import Any, Dict, List, Optional, Set

import httpx

from ..core.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_YOUTUBE_API_BASE,
    DEFAULT_YOUTUBE_UNIT_COSTS,
    YOUTUBE_OP_CHANNEL_INFO,
    YOUTUBE_OP_CHANNEL_VIDEOS,
    YOUTUBE_OP_VIDEO_ANALYTICS,
    YOUTUBE_OP_VIDEO_TAGS,
    YOUTUBE_REJECTION_REASONS,
)
from ..core.errors import mask_credential
from ..core.types import ProviderCallResult, ProviderType
from ..usage.selection.engine import CredentialSelector
from ..usage.tracking.engine import UsageRecorder
from .base import ProviderGateway

lib_logger = logging.getLogger("quota_rotator")

MAX_PAGE_SIZE = 50


class YouTubeGateway(ProviderGateway):
    """Gateway for the YouTube Data API v3."""

    provider_type = ProviderType.YOUTUBE

    def __init__(
        self,
        selector: CredentialSelector,
        recorder: UsageRecorder,
        http_client: Optional[httpx.AsyncClient] = None,
        api_base: str = DEFAULT_YOUTUBE_API_BASE,
        unit_costs: Optional[Dict[str, int]] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize the gateway.

        Args:
            selector: Credential selector
            recorder: Usage recorder
            http_client: Shared client; one is created (and owned) if None
            api_base: YouTube Data API base URL
            unit_costs: Per-operation unit costs, merged over the defaults
            timeout: Request timeout in seconds

        Raises:
            ValueError: A unit cost is negative or not an integer
        """
        super().__init__(selector, recorder)
        self._unit_costs = dict(DEFAULT_YOUTUBE_UNIT_COSTS)
        self._unit_costs.update(unit_costs or {})
        for operation, cost in self._unit_costs.items():
            if isinstance(cost, bool) or not isinstance(cost, int) or cost < 0:
                raise ValueError(
                    f"Unit cost for {operation} must be a non-negative integer, got {cost!r}"
                )
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def unit_cost(self, operation: str) -> int:
        return self._unit_costs[operation]

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def get_channel_info(self, owner_id: str, channel_id: str) -> Dict[str, Any]:
        """Fetch the channels resource (snippet, statistics, contentDetails)."""

        async def call(secret: str) -> ProviderCallResult:
            data = await self._get(
                "channels",
                secret,
                part="snippet,statistics,contentDetails",
                id=channel_id,
            )
            return ProviderCallResult.ok(data, self.unit_cost(YOUTUBE_OP_CHANNEL_INFO))

        return await self._execute(owner_id, YOUTUBE_OP_CHANNEL_INFO, call)

    async def get_channel_videos(
        self, owner_id: str, channel_id: str, max_results: int = MAX_PAGE_SIZE
    ) -> Dict[str, Any]:
        """
        Fetch full details of a channel's most recent uploads.

        Resolves the uploads playlist from the channel, lists its items and
        fetches the videos resource for them.

        Args:
            owner_id: Owning user
            channel_id: YouTube channel id
            max_results: Number of uploads to return, 1-50

        Returns:
            The videos list response
        """
        if not 1 <= max_results <= MAX_PAGE_SIZE:
            raise ValueError(
                f"max_results must be between 1 and {MAX_PAGE_SIZE}, got {max_results}"
            )

        async def call(secret: str) -> ProviderCallResult:
            channel = await self._get(
                "channels", secret, part="contentDetails", id=channel_id
            )
            items = channel.get("items") or []
            if not items:
                raise LookupError(f"Channel {channel_id} not found")
            uploads = items[0]["contentDetails"]["relatedPlaylists"]["uploads"]

            playlist = await self._get(
                "playlistItems",
                secret,
                part="snippet,contentDetails",
                playlistId=uploads,
                maxResults=max_results,
            )
            video_ids = [
                item["contentDetails"]["videoId"]
                for item in playlist.get("items") or []
            ]

            if video_ids:
                videos = await self._get(
                    "videos",
                    secret,
                    part="snippet,statistics,contentDetails",
                    id=",".join(video_ids),
                )
            else:
                videos = {"kind": "youtube#videoListResponse", "items": []}

            return ProviderCallResult.ok(
                videos, self.unit_cost(YOUTUBE_OP_CHANNEL_VIDEOS)
            )

        return await self._execute(owner_id, YOUTUBE_OP_CHANNEL_VIDEOS, call)

    async def get_video_analytics(self, owner_id: str, video_id: str) -> Dict[str, Any]:
        """Fetch public statistics for a video."""

        async def call(secret: str) -> ProviderCallResult:
            data = await self._get("videos", secret, part="statistics", id=video_id)
            return ProviderCallResult.ok(
                data, self.unit_cost(YOUTUBE_OP_VIDEO_ANALYTICS)
            )

        return await self._execute(owner_id, YOUTUBE_OP_VIDEO_ANALYTICS, call)

    async def get_video_tags(self, owner_id: str, video_id: str) -> List[str]:
        """Fetch a video's tags (empty list if it has none)."""

        async def call(secret: str) -> ProviderCallResult:
            data = await self._get("videos", secret, part="snippet", id=video_id)
            items = data.get("items") or []
            if not items:
                raise LookupError(f"Video {video_id} not found")
            tags = items[0].get("snippet", {}).get("tags") or []
            return ProviderCallResult.ok(tags, self.unit_cost(YOUTUBE_OP_VIDEO_TAGS))

        return await self._execute(owner_id, YOUTUBE_OP_VIDEO_TAGS, call)

    # =========================================================================
    # ERROR CLASSIFICATION
    # =========================================================================

    def classify_error(self, error: Exception) -> ProviderCallResult:
        """
        Classify a failed YouTube call.

        401, or an error reason saying the key is spent or refused, is a
        rejection of the credential. Everything else (other HTTP errors,
        network errors, timeouts, unexpected payloads) is a plain failure.
        """
        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            reasons = self._error_reasons(error.response)
            if status_code == 401 or reasons & YOUTUBE_REJECTION_REASONS:
                return ProviderCallResult.rejected(error, status_code)
            return ProviderCallResult.failure(error, status_code)
        return ProviderCallResult.failure(error)

    @staticmethod
    def _error_reasons(response: httpx.Response) -> Set[str]:
        """
        Extract error reasons from a Google API error body.

        Format: {"error": {"errors": [{"reason": ...}], "details": [{"reason": ...}]}}
        """
        try:
            body = response.json()
        except ValueError:
            return set()
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return set()

        reasons = set()
        for key in ("errors", "details"):
            for entry in error.get(key) or []:
                if isinstance(entry, dict) and entry.get("reason"):
                    reasons.add(entry["reason"])
        return reasons

    # =========================================================================
    # HTTP
    # =========================================================================

    async def _get(self, resource: str, secret: str, **params: Any) -> Dict[str, Any]:
        lib_logger.debug(f"YouTube GET {resource} ({mask_credential(secret)})")
        response = await self._client.get(
            f"{self._api_base}/{resource}",
            params=params,
            headers={"X-goog-api-key": secret, "Accept": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.json()
