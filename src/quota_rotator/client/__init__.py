# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

from .rotating_client import QuotaRotatorClient

__all__ = ["QuotaRotatorClient"]
