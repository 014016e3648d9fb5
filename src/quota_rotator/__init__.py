# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Quota-aware API key rotation for metered third-party APIs.

Picks the least-used credential with headroom for each call, records
usage atomically, and falls back to a deployment-level key when every
stored credential is exhausted.
"""

import logging

from .core import (
    ProviderType,
    SelectionKind,
    RecordingStatus,
    CallOutcome,
    Credential,
    CredentialSummary,
    SelectedCredential,
    UsageRecordingOutcome,
    ProviderCallResult,
    QuotaRotatorError,
    ConfigurationError,
    StorageError,
    CredentialNotFoundError,
    CredentialOwnershipError,
    RemoteProviderError,
    CredentialRejectedError,
    mask_credential,
    ConfigLoader,
    RotatorConfig,
)
from .usage import (
    CredentialStore,
    CredentialSelector,
    UsageRecorder,
    dollars_to_units,
    CredentialAPI,
)
from .gateways import ProviderGateway, YouTubeGateway, OpenAIGateway
from .client import QuotaRotatorClient

# Library logging is silent unless the host application configures it
logging.getLogger("quota_rotator").addHandler(logging.NullHandler())

__version__ = "1.0.0"

__all__ = [
    "QuotaRotatorClient",
    "ConfigLoader",
    "RotatorConfig",
    "CredentialStore",
    "CredentialSelector",
    "UsageRecorder",
    "dollars_to_units",
    "CredentialAPI",
    "ProviderGateway",
    "YouTubeGateway",
    "OpenAIGateway",
    "ProviderType",
    "SelectionKind",
    "RecordingStatus",
    "CallOutcome",
    "Credential",
    "CredentialSummary",
    "SelectedCredential",
    "UsageRecordingOutcome",
    "ProviderCallResult",
    "QuotaRotatorError",
    "ConfigurationError",
    "StorageError",
    "CredentialNotFoundError",
    "CredentialOwnershipError",
    "RemoteProviderError",
    "CredentialRejectedError",
    "mask_credential",
]
