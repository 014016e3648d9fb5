# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""Usage recording and cost conversion."""

from .engine import UsageRecorder, dollars_to_units

__all__ = ["UsageRecorder", "dollars_to_units"]
