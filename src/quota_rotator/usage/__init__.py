# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Usage core for the quota rotator.

This package provides:
- persistence: CredentialStore and the ORM mapping
- selection: CredentialSelector (least-used-first rotation)
- tracking: UsageRecorder and dollar-to-unit conversion
- integration: CredentialAPI for administrative CRUD
"""

from .persistence import Base, CredentialRecord, CredentialStore
from .selection import CredentialSelector
from .tracking import UsageRecorder, dollars_to_units
from .integration import CredentialAPI, CredentialChangeListener

__all__ = [
    "Base",
    "CredentialRecord",
    "CredentialStore",
    "CredentialSelector",
    "UsageRecorder",
    "dollars_to_units",
    "CredentialAPI",
    "CredentialChangeListener",
]
