# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""Administrative access for the settings endpoints."""

from .api import CredentialAPI, CredentialChangeListener

__all__ = ["CredentialAPI", "CredentialChangeListener"]
