# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""Metered provider gateways."""

from .base import ProviderGateway
from .youtube import YouTubeGateway
from .openai import OpenAIGateway, parse_tag_suggestions

__all__ = [
    "ProviderGateway",
    "YouTubeGateway",
    "OpenAIGateway",
    "parse_tag_suggestions",
]
