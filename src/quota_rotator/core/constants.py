# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Constants and default values for the quota rotator.

Provider cost schedules live here as defaults; every value can be
overridden from the environment through ConfigLoader.
"""

from .types import ProviderType

# =============================================================================
# LOGGING
# =============================================================================

LIB_LOGGER_NAME = "quota_rotator"

# =============================================================================
# STORAGE
# =============================================================================

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///quota_rotator.db"
CREDENTIALS_TABLE_NAME = "api_credentials"

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_DATABASE_URL = "QUOTA_ROTATOR_DATABASE_URL"
ENV_REQUEST_TIMEOUT = "QUOTA_ROTATOR_REQUEST_TIMEOUT"
ENV_YOUTUBE_API_BASE = "YOUTUBE_API_BASE"
ENV_OPENAI_MODEL = "OPENAI_MODEL"
ENV_DOLLARS_PER_UNIT = "OPENAI_DOLLARS_PER_UNIT"
ENV_COST_FROM_USAGE = "OPENAI_COST_FROM_USAGE"
ENV_PREFIX_YOUTUBE_UNIT_COST = "YOUTUBE_UNIT_COST_"
ENV_PREFIX_OPENAI_COST_ESTIMATE = "OPENAI_COST_ESTIMATE_"

# Environment fallback secret per provider type
FALLBACK_SECRET_ENV_VARS = {
    ProviderType.YOUTUBE: "YOUTUBE_API_KEY",
    ProviderType.OPENAI: "OPENAI_API_KEY",
    ProviderType.VISION: "VISION_API_KEY",
    ProviderType.OTHER: "OTHER_API_KEY",
}

# =============================================================================
# HTTP
# =============================================================================

DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"

# =============================================================================
# YOUTUBE COST SCHEDULE (quota units per gateway operation)
# =============================================================================

YOUTUBE_OP_CHANNEL_INFO = "channel_info"
YOUTUBE_OP_CHANNEL_VIDEOS = "channel_videos"  # channels + playlistItems + videos
YOUTUBE_OP_VIDEO_ANALYTICS = "video_analytics"
YOUTUBE_OP_VIDEO_TAGS = "video_tags"

DEFAULT_YOUTUBE_UNIT_COSTS = {
    YOUTUBE_OP_CHANNEL_INFO: 50,
    YOUTUBE_OP_CHANNEL_VIDEOS: 3,
    YOUTUBE_OP_VIDEO_ANALYTICS: 1,
    YOUTUBE_OP_VIDEO_TAGS: 1,
}

# Error reasons that mean the key itself is spent or refused
YOUTUBE_REJECTION_REASONS = frozenset(
    {
        "quotaExceeded",
        "dailyLimitExceeded",
        "keyInvalid",
        "keyExpired",
        "accessNotConfigured",
        "ipRefererBlocked",
        "API_KEY_INVALID",
        "API_KEY_SERVICE_BLOCKED",
    }
)

# =============================================================================
# OPENAI COST SCHEDULE (estimated dollars per call type)
# =============================================================================

OPENAI_CALL_TITLE = "title"
OPENAI_CALL_DESCRIPTION = "description"
OPENAI_CALL_TAGS = "tags"
OPENAI_CALL_ANALYSIS = "analysis"

DEFAULT_OPENAI_COST_ESTIMATES = {
    OPENAI_CALL_TITLE: 0.01,
    OPENAI_CALL_DESCRIPTION: 0.03,
    OPENAI_CALL_TAGS: 0.02,
    OPENAI_CALL_ANALYSIS: 0.05,
}

# Max completion tokens per call type
OPENAI_MAX_TOKENS = {
    OPENAI_CALL_TITLE: 60,
    OPENAI_CALL_DESCRIPTION: 500,
    OPENAI_CALL_TAGS: 300,
    OPENAI_CALL_ANALYSIS: 700,
}

DEFAULT_OPENAI_MODEL = "gpt-4o"

# 1 unit = $0.01
DEFAULT_DOLLARS_PER_UNIT = 0.01

# Fragments of a 429 body that mean billing quota, not a transient rate limit
OPENAI_QUOTA_MARKERS = ("insufficient_quota", "exceeded your current quota")

__all__ = [
    "LIB_LOGGER_NAME",
    "DEFAULT_DATABASE_URL",
    "CREDENTIALS_TABLE_NAME",
    "ENV_DATABASE_URL",
    "ENV_REQUEST_TIMEOUT",
    "ENV_YOUTUBE_API_BASE",
    "ENV_OPENAI_MODEL",
    "ENV_DOLLARS_PER_UNIT",
    "ENV_COST_FROM_USAGE",
    "ENV_PREFIX_YOUTUBE_UNIT_COST",
    "ENV_PREFIX_OPENAI_COST_ESTIMATE",
    "FALLBACK_SECRET_ENV_VARS",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_YOUTUBE_API_BASE",
    "YOUTUBE_OP_CHANNEL_INFO",
    "YOUTUBE_OP_CHANNEL_VIDEOS",
    "YOUTUBE_OP_VIDEO_ANALYTICS",
    "YOUTUBE_OP_VIDEO_TAGS",
    "DEFAULT_YOUTUBE_UNIT_COSTS",
    "YOUTUBE_REJECTION_REASONS",
    "OPENAI_CALL_TITLE",
    "OPENAI_CALL_DESCRIPTION",
    "OPENAI_CALL_TAGS",
    "OPENAI_CALL_ANALYSIS",
    "DEFAULT_OPENAI_COST_ESTIMATES",
    "OPENAI_MAX_TOKENS",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_DOLLARS_PER_UNIT",
    "OPENAI_QUOTA_MARKERS",
]
