# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Core package for the quota rotator.

Provides shared infrastructure used by the usage core and the gateways:
- types: Shared dataclasses and enums
- errors: All custom exceptions
- config: ConfigLoader for environment configuration
- constants: Default values and provider cost schedules
"""

from .types import (
    ProviderType,
    SelectionKind,
    RecordingStatus,
    CallOutcome,
    Credential,
    CredentialSummary,
    SelectedCredential,
    UsageRecordingOutcome,
    ProviderCallResult,
)

from .errors import (
    QuotaRotatorError,
    ConfigurationError,
    StorageError,
    CredentialNotFoundError,
    CredentialOwnershipError,
    RemoteProviderError,
    CredentialRejectedError,
    mask_credential,
)

from .config import ConfigLoader, RotatorConfig

__all__ = [
    # Types
    "ProviderType",
    "SelectionKind",
    "RecordingStatus",
    "CallOutcome",
    "Credential",
    "CredentialSummary",
    "SelectedCredential",
    "UsageRecordingOutcome",
    "ProviderCallResult",
    # Errors
    "QuotaRotatorError",
    "ConfigurationError",
    "StorageError",
    "CredentialNotFoundError",
    "CredentialOwnershipError",
    "RemoteProviderError",
    "CredentialRejectedError",
    "mask_credential",
    # Config
    "ConfigLoader",
    "RotatorConfig",
]
