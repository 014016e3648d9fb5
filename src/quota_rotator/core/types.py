# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Shared type definitions for the quota rotator.

This module contains dataclasses and enums used across the storage,
selection, tracking and gateway packages.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


# =============================================================================
# ENUMS
# =============================================================================


class ProviderType(str, Enum):
    """External metered API family a credential authenticates against."""

    YOUTUBE = "youtube"
    OPENAI = "openai"
    VISION = "vision"
    OTHER = "other"


class SelectionKind(str, Enum):
    """Where a selected secret came from."""

    STORED = "stored"  # A persisted, quota-tracked credential row
    ENVIRONMENT = "environment"  # Unmetered deployment fallback


class RecordingStatus(str, Enum):
    """Result of a usage recording attempt."""

    RECORDED = "recorded"
    SKIPPED = "skipped"  # Environment fallback, nothing to track
    FAILED = "failed"  # Increment failed, absorbed by the recorder


class CallOutcome(str, Enum):
    """Result of one remote provider invocation."""

    SUCCEEDED = "succeeded"
    REJECTED_AS_EXHAUSTED = "rejected_as_exhausted"
    FAILED = "failed"


# =============================================================================
# CREDENTIAL TYPES
# =============================================================================


@dataclass
class Credential:
    """
    Full projection of a stored credential.

    Carries the secret value and is only handed to internal callers
    (selector, gateways). Use to_summary() for anything user-facing.
    """

    id: int
    owner_id: str
    provider_type: ProviderType
    display_name: str
    secret_value: str
    is_active: bool = True
    quota_limit: int = 0  # 0 = unlimited
    quota_used: int = 0
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_unlimited(self) -> bool:
        """True if no ceiling is enforced."""
        return self.quota_limit == 0

    @property
    def is_exhausted(self) -> bool:
        """True if a ceiling is set and usage has reached it."""
        return self.quota_limit > 0 and self.quota_used >= self.quota_limit

    @property
    def has_headroom(self) -> bool:
        return not self.is_exhausted

    @property
    def remaining(self) -> Optional[int]:
        """Remaining units before the ceiling, or None if unlimited."""
        if self.is_unlimited:
            return None
        return max(0, self.quota_limit - self.quota_used)

    def to_summary(self) -> "CredentialSummary":
        """Build the display-safe projection of this credential."""
        from .errors import mask_credential

        return CredentialSummary(
            id=self.id,
            owner_id=self.owner_id,
            provider_type=self.provider_type,
            display_name=self.display_name,
            secret_preview=mask_credential(self.secret_value),
            is_active=self.is_active,
            quota_limit=self.quota_limit,
            quota_used=self.quota_used,
            last_used_at=self.last_used_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class CredentialSummary:
    """
    Display-safe projection of a stored credential.

    Never contains the secret itself, only a masked preview.
    """

    id: int
    owner_id: str
    provider_type: ProviderType
    display_name: str
    secret_preview: str
    is_active: bool
    quota_limit: int
    quota_used: int
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_exhausted(self) -> bool:
        return self.quota_limit > 0 and self.quota_used >= self.quota_limit

    @property
    def usage_percent(self) -> Optional[float]:
        """Percentage of the ceiling consumed, or None if unlimited."""
        if self.quota_limit == 0:
            return None
        return min(100.0, self.quota_used * 100.0 / self.quota_limit)


# =============================================================================
# SELECTION TYPES
# =============================================================================


@dataclass(frozen=True)
class SelectedCredential:
    """
    The credential a gateway should use for its next call.

    Either a stored credential (credential_id set, usage is tracked)
    or the environment fallback (credential_id None, usage untracked).
    """

    kind: SelectionKind
    provider_type: ProviderType
    secret_value: str
    credential_id: Optional[int] = None

    @classmethod
    def stored(cls, credential: Credential) -> "SelectedCredential":
        """Select a persisted credential."""
        return cls(
            kind=SelectionKind.STORED,
            provider_type=credential.provider_type,
            secret_value=credential.secret_value,
            credential_id=credential.id,
        )

    @classmethod
    def environment(
        cls, provider_type: ProviderType, secret_value: str
    ) -> "SelectedCredential":
        """Select the deployment fallback secret."""
        return cls(
            kind=SelectionKind.ENVIRONMENT,
            provider_type=provider_type,
            secret_value=secret_value,
        )

    @property
    def is_environment(self) -> bool:
        return self.kind == SelectionKind.ENVIRONMENT

    def __repr__(self) -> str:
        from .errors import mask_credential

        return (
            f"SelectedCredential(kind={self.kind.value}, "
            f"provider_type={self.provider_type.value}, "
            f"credential_id={self.credential_id}, "
            f"secret_value={mask_credential(self.secret_value)!r})"
        )


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class UsageRecordingOutcome:
    """
    Result of UsageRecorder.record_usage().

    A failed recording is reported here instead of raised, so callers
    can assert it was attempted without inspecting logs.
    """

    status: RecordingStatus
    just_exhausted: bool = False
    quota_used: Optional[int] = None
    cause: Optional[Exception] = None

    @classmethod
    def recorded(cls, quota_used: int, just_exhausted: bool) -> "UsageRecordingOutcome":
        return cls(
            status=RecordingStatus.RECORDED,
            just_exhausted=just_exhausted,
            quota_used=quota_used,
        )

    @classmethod
    def skipped(cls) -> "UsageRecordingOutcome":
        return cls(status=RecordingStatus.SKIPPED)

    @classmethod
    def failed(cls, cause: Exception) -> "UsageRecordingOutcome":
        return cls(status=RecordingStatus.FAILED, cause=cause)


@dataclass
class ProviderCallResult:
    """
    Tagged result of one remote provider invocation.

    Produced by the gateway adapters so the gateway can branch on the
    outcome without inspecting exception messages.
    """

    kind: CallOutcome
    value: Any = None
    units_consumed: int = 0
    cause: Optional[BaseException] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, value: Any, units_consumed: int) -> "ProviderCallResult":
        """Create a successful result."""
        return cls(
            kind=CallOutcome.SUCCEEDED, value=value, units_consumed=units_consumed
        )

    @classmethod
    def rejected(
        cls, cause: BaseException, status_code: Optional[int] = None
    ) -> "ProviderCallResult":
        """The provider refused the credential (quota exhausted or unauthorized)."""
        return cls(
            kind=CallOutcome.REJECTED_AS_EXHAUSTED,
            cause=cause,
            status_code=status_code,
        )

    @classmethod
    def failure(
        cls, cause: BaseException, status_code: Optional[int] = None
    ) -> "ProviderCallResult":
        """Any other remote failure (network, timeout, server error)."""
        return cls(kind=CallOutcome.FAILED, cause=cause, status_code=status_code)
