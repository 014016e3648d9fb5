# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
QuotaRotatorClient - composition root for the quota rotator.

Owns one CredentialStore, one CredentialSelector, one UsageRecorder and
one gateway per provider. Gateways are created here, not as module
globals, so each client instance has its own selection cache.
"""

import logging
from typing import Any, Dict, Optional

import httpx
import litellm

from ..core.config import ConfigLoader, RotatorConfig
from ..core.types import ProviderType
from ..gateways.base import ProviderGateway
from ..gateways.openai import OpenAIGateway
from ..gateways.youtube import YouTubeGateway
from ..usage.integration.api import CredentialAPI
from ..usage.persistence.store import CredentialStore
from ..usage.selection.engine import CredentialSelector
from ..usage.tracking.engine import UsageRecorder

lib_logger = logging.getLogger("quota_rotator")


class QuotaRotatorClient:
    """
    Entry point for the HTTP layer.

    Usage:
        async with QuotaRotatorClient() as client:
            videos = await client.youtube.get_channel_videos(user_id, channel_id)
            title = await client.openai.generate_optimized_title(
                user_id, "My video", ["python", "asyncio"]
            )
            await client.credentials.rotate_credential(user_id, key_id, new_key)
    """

    def __init__(
        self,
        config: Optional[RotatorConfig] = None,
        store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        configure_logging: bool = True,
    ):
        """
        Initialize the client.

        Args:
            config: Configuration snapshot. Loaded from the environment
                    (and .env) if None.
            store: Credential store. Created from config.database_url if None.
            http_client: Shared httpx client for the YouTube gateway. The
                         client creates and closes its own if None.
            configure_logging: Let library logs propagate to the host
                               application's handlers.
        """
        self.config = config or ConfigLoader().load()

        if configure_logging:
            lib_logger.propagate = True

        litellm.drop_params = True

        self._owns_store = store is None
        self.store = store or CredentialStore.from_url(self.config.database_url)
        self.selector = CredentialSelector(self.store, self.config.fallback_secrets)
        self.recorder = UsageRecorder(self.store)

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=self.config.request_timeout
        )

        self.youtube = YouTubeGateway(
            self.selector,
            self.recorder,
            http_client=self.http_client,
            api_base=self.config.youtube_api_base,
            unit_costs=self.config.youtube_unit_costs,
            timeout=self.config.request_timeout,
        )
        self.openai = OpenAIGateway(
            self.selector,
            self.recorder,
            model=self.config.openai_model,
            cost_estimates=self.config.openai_cost_estimates,
            dollars_per_unit=self.config.dollars_per_unit,
            use_reported_usage=self.config.use_reported_usage,
            timeout=self.config.request_timeout,
        )
        self._gateways: Dict[ProviderType, ProviderGateway] = {
            ProviderType.YOUTUBE: self.youtube,
            ProviderType.OPENAI: self.openai,
        }

        self.credentials = CredentialAPI(self.store, self.selector)
        self.credentials.add_listener(self._on_credential_changed)

    def get_gateway(self, provider_type: Any) -> ProviderGateway:
        """Gateway for a provider type (youtube or openai)."""
        provider_type = ProviderType(provider_type)
        if provider_type not in self._gateways:
            raise ValueError(f"No gateway for provider type '{provider_type.value}'")
        return self._gateways[provider_type]

    async def initialize(self) -> None:
        """Create the credentials table if needed."""
        await self.store.create_schema()
        lib_logger.debug("Quota rotator initialized")

    async def close(self) -> None:
        """Finish pending accounting and release connections."""
        for gateway in self._gateways.values():
            await gateway.wait_pending()
        if self._owns_http_client:
            await self.http_client.aclose()
        if self._owns_store:
            await self.store.dispose()

    async def __aenter__(self) -> "QuotaRotatorClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _on_credential_changed(self, owner_id: str, credential_id: int) -> None:
        for gateway in self._gateways.values():
            gateway.invalidate_credential(credential_id, owner_id=owner_id)
