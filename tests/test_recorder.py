# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from quota_rotator.core.errors import CredentialNotFoundError, StorageError
from quota_rotator.core.types import (
    ProviderType,
    RecordingStatus,
    SelectedCredential,
)
from quota_rotator.usage.tracking.engine import UsageRecorder, dollars_to_units


class TestDollarsToUnits:
    def test_rounds_up(self):
        assert dollars_to_units(0.031) == 4

    def test_exact_amounts_are_not_overcharged(self):
        assert dollars_to_units(0.03) == 3
        assert dollars_to_units(0.07) == 7
        assert dollars_to_units(0.05) == 5

    def test_zero_and_tiny_costs(self):
        assert dollars_to_units(0) == 0
        assert dollars_to_units(0.0001) == 1

    def test_custom_unit_size(self):
        assert dollars_to_units(Decimal("0.25"), dollars_per_unit="0.1") == 3

    def test_rejects_negative_cost(self):
        with pytest.raises(ValueError):
            dollars_to_units(-0.01)

    def test_rejects_non_positive_unit_size(self):
        with pytest.raises(ValueError):
            dollars_to_units(0.01, dollars_per_unit=0)


@pytest.mark.asyncio
async def test_records_against_stored_credential(store, seed):
    cred = await seed("a", limit=10)
    recorder = UsageRecorder(store)

    outcome = await recorder.record_usage(SelectedCredential.stored(cred), 3)

    assert outcome.status is RecordingStatus.RECORDED
    assert outcome.quota_used == 3
    assert outcome.just_exhausted is False
    assert (await store.get_by_id(cred.id)).quota_used == 3


@pytest.mark.asyncio
async def test_reaching_limit_reports_just_exhausted(store, seed):
    cred = await seed("a", used=2, limit=3)
    recorder = UsageRecorder(store)

    outcome = await recorder.record_usage(SelectedCredential.stored(cred), 1)

    assert outcome.just_exhausted is True
    assert outcome.quota_used == 3


@pytest.mark.asyncio
async def test_overshooting_limit_reports_just_exhausted(store, seed):
    cred = await seed("a", used=45, limit=50)
    recorder = UsageRecorder(store)

    outcome = await recorder.record_usage(SelectedCredential.stored(cred), 50)

    assert outcome.just_exhausted is True
    assert outcome.quota_used == 95


@pytest.mark.asyncio
async def test_unlimited_never_exhausts(store, seed):
    cred = await seed("a", limit=0)
    recorder = UsageRecorder(store)
    selected = SelectedCredential.stored(cred)

    for units in (1, 1000, 10_000_000):
        outcome = await recorder.record_usage(selected, units)
        assert outcome.just_exhausted is False

    assert (await store.get_by_id(cred.id)).quota_used == 10_001_001


@pytest.mark.asyncio
async def test_environment_usage_is_not_tracked():
    store = AsyncMock()
    recorder = UsageRecorder(store)

    outcome = await recorder.record_usage(
        SelectedCredential.environment(ProviderType.OPENAI, "sk-env-secret-key"), 5
    )

    assert outcome.status is RecordingStatus.SKIPPED
    assert outcome.just_exhausted is False
    store.increment_usage.assert_not_called()


@pytest.mark.asyncio
async def test_deleted_credential_is_absorbed(store, seed):
    cred = await seed("a", limit=10)
    selected = SelectedCredential.stored(cred)
    await store.delete(cred.id)
    recorder = UsageRecorder(store)

    outcome = await recorder.record_usage(selected, 2)

    assert outcome.status is RecordingStatus.FAILED
    assert isinstance(outcome.cause, CredentialNotFoundError)
    assert outcome.just_exhausted is False


@pytest.mark.asyncio
async def test_storage_failure_is_absorbed(seed, store):
    cred = await seed("a")
    broken = AsyncMock()
    broken.increment_usage.side_effect = StorageError("disk I/O error")
    recorder = UsageRecorder(broken)

    outcome = await recorder.record_usage(SelectedCredential.stored(cred), 1)

    assert outcome.status is RecordingStatus.FAILED
    assert isinstance(outcome.cause, StorageError)


@pytest.mark.asyncio
async def test_invalid_units_rejected(store, seed):
    cred = await seed("a")
    recorder = UsageRecorder(store)

    with pytest.raises(ValueError):
        await recorder.record_usage(SelectedCredential.stored(cred), -1)
    with pytest.raises(ValueError):
        await recorder.record_usage(SelectedCredential.stored(cred), 0.5)
