# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Centralized configuration loader for the quota rotator.

Configuration is read once at process start from:
1. System defaults (core/constants.py)
2. A .env file, if present (never overrides variables already set)
3. Environment variables

The resulting RotatorConfig is handed to the composition root and is
not re-read afterwards.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import load_dotenv

from .types import ProviderType
from .constants import (
    DEFAULT_DATABASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_YOUTUBE_API_BASE,
    DEFAULT_YOUTUBE_UNIT_COSTS,
    DEFAULT_OPENAI_COST_ESTIMATES,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_DOLLARS_PER_UNIT,
    ENV_DATABASE_URL,
    ENV_REQUEST_TIMEOUT,
    ENV_YOUTUBE_API_BASE,
    ENV_OPENAI_MODEL,
    ENV_DOLLARS_PER_UNIT,
    ENV_COST_FROM_USAGE,
    ENV_PREFIX_YOUTUBE_UNIT_COST,
    ENV_PREFIX_OPENAI_COST_ESTIMATE,
    FALLBACK_SECRET_ENV_VARS,
)

lib_logger = logging.getLogger("quota_rotator")


@dataclass
class RotatorConfig:
    """
    Complete configuration for the quota rotator.

    Loaded by ConfigLoader; every field has a usable default so tests can
    build one directly.
    """

    database_url: str = DEFAULT_DATABASE_URL
    fallback_secrets: Dict[ProviderType, str] = field(default_factory=dict)
    youtube_unit_costs: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_YOUTUBE_UNIT_COSTS)
    )
    openai_cost_estimates: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_OPENAI_COST_ESTIMATES)
    )
    dollars_per_unit: float = DEFAULT_DOLLARS_PER_UNIT
    use_reported_usage: bool = True
    openai_model: str = DEFAULT_OPENAI_MODEL
    youtube_api_base: str = DEFAULT_YOUTUBE_API_BASE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def fallback_secret(self, provider_type: ProviderType) -> Optional[str]:
        """Environment fallback secret for a provider, or None if unset."""
        return self.fallback_secrets.get(provider_type)


class ConfigLoader:
    """
    Builds a RotatorConfig from the environment.

    Usage:
        config = ConfigLoader().load()
        client = QuotaRotatorClient(config)
    """

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        env_file: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the ConfigLoader.

        Args:
            env: Mapping to read from. Defaults to os.environ (after
                 loading the .env file).
            env_file: Explicit .env path. If None, python-dotenv searches
                      upwards from the working directory.
        """
        self._env = env
        self._env_file = env_file

    def load(self) -> RotatorConfig:
        """
        Load the complete configuration.

        Returns:
            RotatorConfig snapshot of the current environment
        """
        if self._env is None:
            load_dotenv(dotenv_path=self._env_file, override=False)
            env: Mapping[str, str] = os.environ
        else:
            env = self._env

        config = RotatorConfig(
            database_url=env.get(ENV_DATABASE_URL) or DEFAULT_DATABASE_URL,
            fallback_secrets=self._load_fallback_secrets(env),
            youtube_unit_costs=self._load_youtube_costs(env),
            openai_cost_estimates=self._load_openai_estimates(env),
            dollars_per_unit=self._env_float(
                env, ENV_DOLLARS_PER_UNIT, DEFAULT_DOLLARS_PER_UNIT
            ),
            use_reported_usage=self._env_bool(env, ENV_COST_FROM_USAGE, True),
            openai_model=env.get(ENV_OPENAI_MODEL) or DEFAULT_OPENAI_MODEL,
            youtube_api_base=(
                env.get(ENV_YOUTUBE_API_BASE) or DEFAULT_YOUTUBE_API_BASE
            ).rstrip("/"),
            request_timeout=self._env_float(
                env, ENV_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT
            ),
        )

        if config.dollars_per_unit <= 0:
            lib_logger.warning(
                f"Invalid {ENV_DOLLARS_PER_UNIT}={config.dollars_per_unit}, "
                f"using default {DEFAULT_DOLLARS_PER_UNIT}"
            )
            config.dollars_per_unit = DEFAULT_DOLLARS_PER_UNIT

        configured = ", ".join(p.value for p in config.fallback_secrets) or "none"
        lib_logger.debug(f"Environment fallback secrets configured for: {configured}")
        return config

    # =========================================================================
    # INTERNAL METHODS
    # =========================================================================

    def _load_fallback_secrets(
        self, env: Mapping[str, str]
    ) -> Dict[ProviderType, str]:
        secrets: Dict[ProviderType, str] = {}
        for provider_type, var_name in FALLBACK_SECRET_ENV_VARS.items():
            value = (env.get(var_name) or "").strip()
            if value:
                secrets[provider_type] = value
        return secrets

    def _load_youtube_costs(self, env: Mapping[str, str]) -> Dict[str, int]:
        costs = dict(DEFAULT_YOUTUBE_UNIT_COSTS)
        for operation, default in DEFAULT_YOUTUBE_UNIT_COSTS.items():
            name = f"{ENV_PREFIX_YOUTUBE_UNIT_COST}{operation.upper()}"
            value = self._env_int(env, name, default)
            if value < 0:
                lib_logger.warning(f"Negative {name}={value}, using default {default}")
                value = default
            costs[operation] = value
        return costs

    def _load_openai_estimates(self, env: Mapping[str, str]) -> Dict[str, float]:
        estimates = dict(DEFAULT_OPENAI_COST_ESTIMATES)
        for call_type, default in DEFAULT_OPENAI_COST_ESTIMATES.items():
            name = f"{ENV_PREFIX_OPENAI_COST_ESTIMATE}{call_type.upper()}"
            value = self._env_float(env, name, default)
            if value < 0:
                lib_logger.warning(f"Negative {name}={value}, using default {default}")
                value = default
            estimates[call_type] = value
        return estimates

    @staticmethod
    def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
        """Parse an integer from the environment with fallback to default."""
        raw = env.get(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
            return default

    @staticmethod
    def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
        """Parse a float from the environment with fallback to default."""
        raw = env.get(name)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except ValueError:
            lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
            return default

    @staticmethod
    def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
        raw = env.get(name)
        if raw is None or raw == "":
            return default
        return raw.strip().lower() in ("1", "true", "yes", "on")
