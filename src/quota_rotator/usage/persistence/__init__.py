# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""Durable credential storage."""

from .models import Base, CredentialRecord
from .store import CredentialStore, UPDATABLE_FIELDS

__all__ = [
    "Base",
    "CredentialRecord",
    "CredentialStore",
    "UPDATABLE_FIELDS",
]
