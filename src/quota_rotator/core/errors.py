# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Error types for the quota rotator.

Only ConfigurationError, StorageError (and its NotFound/ownership
relatives on the administrative path) and RemoteProviderError are
allowed to reach the HTTP layer. Usage recording failures are absorbed
by the UsageRecorder and reported as an outcome value instead.
"""

from typing import Optional

from .types import ProviderType


class QuotaRotatorError(Exception):
    """Base class for all quota rotator errors."""


class ConfigurationError(QuotaRotatorError):
    """
    No usable credential of any kind exists for a provider type.

    Raised when there is no stored credential with headroom and no
    environment fallback secret is configured. Fatal, not retried.
    """

    def __init__(self, message: str, provider_type: Optional[ProviderType] = None):
        super().__init__(message)
        self.provider_type = provider_type


class StorageError(QuotaRotatorError):
    """The durable store failed to read or write a credential row."""


class CredentialNotFoundError(QuotaRotatorError, LookupError):
    """A credential id does not exist (or was deleted concurrently)."""

    def __init__(self, credential_id: int):
        super().__init__(f"Credential {credential_id} not found")
        self.credential_id = credential_id


class CredentialOwnershipError(QuotaRotatorError):
    """An owner tried to access a credential belonging to someone else."""

    def __init__(self, credential_id: int, owner_id: str):
        super().__init__(
            f"Credential {credential_id} does not belong to owner {owner_id}"
        )
        self.credential_id = credential_id
        self.owner_id = owner_id


class RemoteProviderError(QuotaRotatorError):
    """
    The third-party API rejected or failed the call.

    Attributes:
        provider_type: Provider that was called
        operation: Gateway operation name (e.g. "channel_info")
        status_code: HTTP status from the provider, if any
    """

    def __init__(
        self,
        message: str,
        provider_type: ProviderType,
        operation: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider_type = provider_type
        self.operation = operation
        self.status_code = status_code


class CredentialRejectedError(RemoteProviderError):
    """
    The provider refused the credential itself.

    Quota exhausted on the provider side, key invalid or unauthorized.
    The gateway has already dropped its cached selection.
    """


def mask_credential(credential: Optional[str], style: str = "short") -> str:
    """
    Mask a secret for logging and display.

    Args:
        credential: Secret value to mask
        style: "short" shows the last 4 characters, "full" shows the
               first 4 and last 4 characters

    Returns:
        Masked string, never the full secret
    """
    if not credential:
        return "<empty>"
    if len(credential) <= 8:
        return "****"
    if style == "full":
        return f"{credential[:4]}...{credential[-4:]}"
    return f"...{credential[-4:]}"


__all__ = [
    "QuotaRotatorError",
    "ConfigurationError",
    "StorageError",
    "CredentialNotFoundError",
    "CredentialOwnershipError",
    "RemoteProviderError",
    "CredentialRejectedError",
    "mask_credential",
]
