# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Selection engine for credential rotation.

Picks the credential a gateway should use for its next call:
1. Least-used active credential with headroom
2. Otherwise the next credential with headroom, in usage order
3. Otherwise the environment fallback secret
4. Otherwise ConfigurationError

Quota ceilings are hard stops: an exhausted stored credential is never
returned, even when it is the only one.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ...core.errors import ConfigurationError
from ...core.constants import FALLBACK_SECRET_ENV_VARS
from ...core.types import Credential, ProviderType, SelectedCredential
from ..persistence.store import CredentialStore

lib_logger = logging.getLogger("quota_rotator")


class CredentialSelector:
    """
    Deterministic least-used-first selection with exhaustion skipping.

    Selection is read-only: it records nothing and takes no locks. Two
    concurrent calls may pick the same credential and overshoot its
    ceiling slightly, which is tolerated.
    """

    def __init__(
        self,
        store: CredentialStore,
        fallback_secrets: Optional[Mapping[ProviderType, str]] = None,
    ):
        """
        Initialize the selector.

        Args:
            store: CredentialStore to read candidates from
            fallback_secrets: Environment fallback secret per provider type,
                              read once at process start
        """
        self._store = store
        self._fallback_secrets: Dict[ProviderType, str] = dict(fallback_secrets or {})

    async def select_credential(
        self,
        owner_id: str,
        provider_type: Union[ProviderType, str],
    ) -> SelectedCredential:
        """
        Select the credential to use for the next call.

        Args:
            owner_id: Owning user
            provider_type: Provider family

        Returns:
            SelectedCredential, stored or environment

        Raises:
            ConfigurationError: No usable stored credential and no fallback
            StorageError: Listing candidates failed (never masked by fallback)
        """
        provider_type = ProviderType(provider_type)
        candidates = await self._store.list_active_by_owner_and_type(
            owner_id, provider_type
        )

        if not candidates:
            return self._environment_fallback(
                owner_id, provider_type, reason="no active credentials"
            )

        selected = self._pick(candidates)
        if selected is None:
            return self._environment_fallback(
                owner_id,
                provider_type,
                reason=f"all {len(candidates)} active credential(s) exhausted",
            )

        lib_logger.debug(
            f"Selected {provider_type.value} credential {selected.id} for owner {owner_id} "
            f"(used {selected.quota_used}/{selected.quota_limit or 'unlimited'}, "
            f"from {len(candidates)} active)"
        )
        return SelectedCredential.stored(selected)

    async def get_availability(
        self,
        owner_id: str,
        provider_type: Union[ProviderType, str],
    ) -> Dict[str, Any]:
        """
        Get availability statistics for an owner's credentials.

        Useful for status reporting; does not affect selection.

        Returns:
            Dict with active/usable/exhausted counts and fallback status
        """
        provider_type = ProviderType(provider_type)
        candidates = await self._store.list_active_by_owner_and_type(
            owner_id, provider_type
        )
        usable = sum(1 for cred in candidates if cred.has_headroom)
        return {
            "provider_type": provider_type.value,
            "active": len(candidates),
            "usable": usable,
            "exhausted": len(candidates) - usable,
            "fallback_configured": provider_type in self._fallback_secrets,
        }

    def has_fallback(self, provider_type: Union[ProviderType, str]) -> bool:
        return ProviderType(provider_type) in self._fallback_secrets

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    @staticmethod
    def _pick(candidates: List[Credential]) -> Optional[Credential]:
        """
        Apply the rotation policy to an already-ordered candidate list.

        The head (lowest usage) wins if it has headroom; otherwise the
        first later candidate with headroom.
        """
        head = candidates[0]
        if head.is_unlimited or head.quota_used < head.quota_limit:
            return head

        for credential in candidates[1:]:
            if credential.is_unlimited or credential.quota_used < credential.quota_limit:
                return credential

        return None

    def _environment_fallback(
        self,
        owner_id: str,
        provider_type: ProviderType,
        reason: str,
    ) -> SelectedCredential:
        secret = self._fallback_secrets.get(provider_type)
        if not secret:
            env_var = FALLBACK_SECRET_ENV_VARS.get(provider_type, "?")
            lib_logger.warning(
                f"No usable {provider_type.value} credential for owner {owner_id} "
                f"({reason}) and {env_var} is not configured"
            )
            raise ConfigurationError(
                f"{provider_type.value} integration not configured: {reason} "
                f"and no {env_var} fallback is set",
                provider_type=provider_type,
            )

        lib_logger.info(
            f"Using environment {provider_type.value} key for owner {owner_id} ({reason})"
        )
        return SelectedCredential.environment(provider_type, secret)
