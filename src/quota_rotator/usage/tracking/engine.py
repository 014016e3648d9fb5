# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Tracking engine for usage recording.

Charges the cost of a completed remote call to the credential that made
it and reports whether the credential is now exhausted. Accounting is
best-effort: a failed increment is logged and returned as an outcome,
never raised into the caller whose remote call already succeeded.
"""

import logging
from decimal import ROUND_CEILING, Decimal
from typing import Union

from ...core.constants import DEFAULT_DOLLARS_PER_UNIT
from ...core.errors import CredentialNotFoundError, StorageError, mask_credential
from ...core.types import SelectedCredential, UsageRecordingOutcome
from ..persistence.store import CredentialStore

lib_logger = logging.getLogger("quota_rotator")


def dollars_to_units(
    cost: Union[float, Decimal, str],
    dollars_per_unit: Union[float, Decimal, str] = DEFAULT_DOLLARS_PER_UNIT,
) -> int:
    """
    Convert a dollar cost into integer quota units, rounding up.

    Uses decimal arithmetic so 0.07 / 0.01 is exactly 7, not 8.

    Examples:
        0.031 -> 4
        0.03  -> 3
        0     -> 0
    """
    cost_dec = Decimal(str(cost))
    per_unit = Decimal(str(dollars_per_unit))
    if cost_dec < 0:
        raise ValueError(f"cost must be non-negative, got {cost}")
    if per_unit <= 0:
        raise ValueError(f"dollars_per_unit must be positive, got {dollars_per_unit}")
    return int((cost_dec / per_unit).to_integral_value(rounding=ROUND_CEILING))


class UsageRecorder:
    """
    Records usage against stored credentials.

    Environment fallback usage is not tracked anywhere.
    """

    def __init__(self, store: CredentialStore):
        self._store = store

    async def record_usage(
        self,
        selected: SelectedCredential,
        units_consumed: int,
    ) -> UsageRecordingOutcome:
        """
        Record the cost of a completed call.

        Args:
            selected: Credential that made the call
            units_consumed: Non-negative integer cost in quota units

        Returns:
            UsageRecordingOutcome; just_exhausted is True when the credential
            has a ceiling and usage now meets or exceeds it
        """
        if (
            isinstance(units_consumed, bool)
            or not isinstance(units_consumed, int)
            or units_consumed < 0
        ):
            raise ValueError(
                f"units_consumed must be a non-negative integer, got {units_consumed!r}"
            )

        if selected.is_environment:
            return UsageRecordingOutcome.skipped()

        try:
            credential = await self._store.increment_usage(
                selected.credential_id, units_consumed
            )
        except (CredentialNotFoundError, StorageError) as exc:
            lib_logger.warning(
                f"Failed to record {units_consumed} unit(s) for "
                f"{selected.provider_type.value} credential {selected.credential_id} "
                f"({mask_credential(selected.secret_value)}): {exc}"
            )
            return UsageRecordingOutcome.failed(exc)

        just_exhausted = credential.is_exhausted
        if just_exhausted:
            lib_logger.info(
                f"{credential.provider_type.value} credential {credential.id} "
                f"reached its quota ({credential.quota_used}/{credential.quota_limit})"
            )
        else:
            lib_logger.debug(
                f"Recorded {units_consumed} unit(s) for credential {credential.id} "
                f"(now {credential.quota_used}/{credential.quota_limit or 'unlimited'})"
            )
        return UsageRecordingOutcome.recorded(credential.quota_used, just_exhausted)
