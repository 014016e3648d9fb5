# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Credential API facade for the settings endpoints.

Administrative CRUD over the CredentialStore, scoped to one owner per
call. These operations are not usage-generating: they bypass selection
and recording entirely.

=============================================================================
USAGE
=============================================================================

    api = client.credentials

    created = await api.create_credential(
        owner_id="user-1",
        provider_type="youtube",
        display_name="Main key",
        secret_value="AIza...",
        quota_limit=10000,
    )
    await api.rotate_credential("user-1", created.id, "AIza-new...")
    await api.set_active("user-1", created.id, False)
    overview = await api.get_quota_overview("user-1")

Every mutation notifies registered listeners with (owner_id, credential_id)
so gateways can drop a cached selection that is now stale.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ...core.errors import CredentialNotFoundError, CredentialOwnershipError
from ...core.types import Credential, CredentialSummary, ProviderType
from ..persistence.store import CredentialStore
from ..selection.engine import CredentialSelector

lib_logger = logging.getLogger("quota_rotator")

CredentialChangeListener = Callable[[str, int], Optional[Awaitable[None]]]


class CredentialAPI:
    """
    Owner-scoped administrative access to stored credentials.

    Returns CredentialSummary values only; secrets never leave through
    this facade.
    """

    def __init__(
        self,
        store: CredentialStore,
        selector: Optional[CredentialSelector] = None,
    ):
        """
        Initialize the facade.

        Args:
            store: CredentialStore to operate on
            selector: Used only for availability in get_quota_overview()
        """
        self._store = store
        self._selector = selector
        self._listeners: List[CredentialChangeListener] = []

    def add_listener(self, listener: CredentialChangeListener) -> None:
        """Register a callback invoked after every credential mutation."""
        self._listeners.append(listener)

    def remove_listener(self, listener: CredentialChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # =========================================================================
    # READS
    # =========================================================================

    async def list_credentials(self, owner_id: str) -> List[CredentialSummary]:
        """List all of an owner's credentials, including inactive ones."""
        return await self._store.list_by_owner(owner_id)

    async def get_credential(
        self, owner_id: str, credential_id: int
    ) -> CredentialSummary:
        """
        Get one credential.

        Raises:
            CredentialNotFoundError: Unknown id
            CredentialOwnershipError: Credential belongs to another owner
        """
        credential = await self._get_owned(owner_id, credential_id)
        return credential.to_summary()

    async def get_quota_overview(self, owner_id: str) -> Dict[str, Any]:
        """
        Quota usage for the settings page.

        Returns:
            {
                "credentials": [{id, provider_type, display_name, quota_used,
                                 quota_limit, usage_percent, is_active,
                                 is_exhausted}, ...],
                "providers": {provider_type: availability dict, ...}
            }
        """
        summaries = await self._store.list_by_owner(owner_id)
        credentials = [
            {
                "id": summary.id,
                "provider_type": summary.provider_type.value,
                "display_name": summary.display_name,
                "quota_used": summary.quota_used,
                "quota_limit": summary.quota_limit,
                "usage_percent": summary.usage_percent,
                "is_active": summary.is_active,
                "is_exhausted": summary.is_exhausted,
            }
            for summary in summaries
        ]

        providers: Dict[str, Any] = {}
        if self._selector is not None:
            for provider_type in ProviderType:
                providers[provider_type.value] = (
                    await self._selector.get_availability(owner_id, provider_type)
                )

        return {"credentials": credentials, "providers": providers}

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_credential(
        self,
        owner_id: str,
        provider_type: Union[ProviderType, str],
        display_name: str,
        secret_value: str,
        quota_limit: int = 0,
        is_active: bool = True,
    ) -> CredentialSummary:
        """Register a new credential for an owner."""
        credential = await self._store.create(
            owner_id=owner_id,
            provider_type=provider_type,
            display_name=display_name,
            secret_value=secret_value,
            quota_limit=quota_limit,
            is_active=is_active,
        )
        lib_logger.info(
            f"Owner {owner_id} added {credential.provider_type.value} credential "
            f"{credential.id} ('{display_name}')"
        )
        await self._notify(owner_id, credential.id)
        return credential.to_summary()

    async def update_credential(
        self, owner_id: str, credential_id: int, **changes: Any
    ) -> CredentialSummary:
        """
        Patch display_name, secret_value, is_active and/or quota_limit.

        Raises:
            CredentialNotFoundError: Unknown id
            CredentialOwnershipError: Credential belongs to another owner
            ValueError: Immutable or unknown field, invalid value
        """
        await self._get_owned(owner_id, credential_id)
        credential = await self._store.update(credential_id, **changes)
        lib_logger.info(
            f"Owner {owner_id} updated credential {credential_id} "
            f"({', '.join(sorted(changes)) or 'no fields'})"
        )
        await self._notify(owner_id, credential_id)
        return credential.to_summary()

    async def rotate_credential(
        self, owner_id: str, credential_id: int, new_secret_value: str
    ) -> CredentialSummary:
        """Replace the secret of a credential, keeping its usage history."""
        await self._get_owned(owner_id, credential_id)
        credential = await self._store.rotate(credential_id, new_secret_value)
        lib_logger.info(f"Owner {owner_id} rotated credential {credential_id}")
        await self._notify(owner_id, credential_id)
        return credential.to_summary()

    async def set_active(
        self, owner_id: str, credential_id: int, is_active: bool
    ) -> CredentialSummary:
        return await self.update_credential(
            owner_id, credential_id, is_active=bool(is_active)
        )

    async def delete_credential(self, owner_id: str, credential_id: int) -> None:
        """Delete a credential immediately."""
        await self._get_owned(owner_id, credential_id)
        await self._store.delete(credential_id)
        lib_logger.info(f"Owner {owner_id} deleted credential {credential_id}")
        await self._notify(owner_id, credential_id)

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    async def _get_owned(self, owner_id: str, credential_id: int) -> Credential:
        credential = await self._store.get_by_id(credential_id)
        if credential is None:
            raise CredentialNotFoundError(credential_id)
        if credential.owner_id != owner_id:
            lib_logger.warning(
                f"Owner {owner_id} attempted to access credential {credential_id} "
                f"owned by someone else"
            )
            raise CredentialOwnershipError(credential_id, owner_id)
        return credential

    async def _notify(self, owner_id: str, credential_id: int) -> None:
        for listener in list(self._listeners):
            result = listener(owner_id, credential_id)
            if asyncio.iscoroutine(result):
                await result
