# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""Credential selection and rotation policy."""

from .engine import CredentialSelector

__all__ = ["CredentialSelector"]
