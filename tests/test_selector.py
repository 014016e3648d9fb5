# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

from unittest.mock import AsyncMock

import pytest

from quota_rotator.core.errors import ConfigurationError, StorageError
from quota_rotator.core.types import ProviderType, SelectionKind
from quota_rotator.usage.selection.engine import CredentialSelector

from conftest import OWNER

ENV_SECRET = "env-youtube-key-000000"


@pytest.mark.asyncio
async def test_least_used_first_with_id_tiebreak(store, seed):
    await seed("a", used=10, limit=100)
    b = await seed("b", used=5, limit=100)
    await seed("c", used=5, limit=100)
    selector = CredentialSelector(store)

    selected = await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert selected.kind is SelectionKind.STORED
    assert selected.credential_id == b.id
    assert selected.secret_value == b.secret_value


@pytest.mark.asyncio
async def test_exhausted_credentials_are_skipped(store, seed):
    await seed("a", used=100, limit=100)
    b = await seed("b", used=0, limit=100)
    selector = CredentialSelector(store)

    selected = await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert selected.credential_id == b.id


@pytest.mark.asyncio
async def test_scan_past_exhausted_head(store, seed):
    # Head has lowest usage but a tiny ceiling
    await seed("tiny", used=5, limit=5)
    big = await seed("big", used=50, limit=1000)
    selector = CredentialSelector(store)

    selected = await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert selected.credential_id == big.id


@pytest.mark.asyncio
async def test_all_exhausted_falls_back_to_environment(store, seed):
    await seed("a", used=100, limit=100)
    await seed("b", used=50, limit=50)
    selector = CredentialSelector(store, {ProviderType.YOUTUBE: ENV_SECRET})

    selected = await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert selected.kind is SelectionKind.ENVIRONMENT
    assert selected.credential_id is None
    assert selected.secret_value == ENV_SECRET


@pytest.mark.asyncio
async def test_no_credentials_uses_environment(store):
    selector = CredentialSelector(store, {ProviderType.YOUTUBE: ENV_SECRET})

    selected = await selector.select_credential(OWNER, "youtube")

    assert selected.is_environment


@pytest.mark.asyncio
async def test_no_credentials_and_no_environment_is_fatal(store):
    selector = CredentialSelector(store)

    with pytest.raises(ConfigurationError) as exc_info:
        await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert exc_info.value.provider_type is ProviderType.YOUTUBE
    assert "YOUTUBE_API_KEY" in str(exc_info.value)


@pytest.mark.asyncio
async def test_all_exhausted_and_no_environment_is_fatal(store, seed):
    await seed("a", used=3, limit=3)
    selector = CredentialSelector(store, {ProviderType.OPENAI: "sk-other-provider"})

    with pytest.raises(ConfigurationError):
        await selector.select_credential(OWNER, ProviderType.YOUTUBE)


@pytest.mark.asyncio
async def test_unlimited_credential_always_selectable(store, seed):
    unlimited = await seed("unlimited", used=10_000_000, limit=0)
    selector = CredentialSelector(store)

    selected = await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert selected.credential_id == unlimited.id


@pytest.mark.asyncio
async def test_inactive_credentials_are_never_selected(store, seed):
    await seed("off", used=0, active=False)
    selector = CredentialSelector(store, {ProviderType.YOUTUBE: ENV_SECRET})

    selected = await selector.select_credential(OWNER, ProviderType.YOUTUBE)

    assert selected.is_environment


@pytest.mark.asyncio
async def test_storage_error_is_not_masked_by_fallback():
    store = AsyncMock()
    store.list_active_by_owner_and_type.side_effect = StorageError("database is locked")
    selector = CredentialSelector(store, {ProviderType.YOUTUBE: ENV_SECRET})

    with pytest.raises(StorageError):
        await selector.select_credential(OWNER, ProviderType.YOUTUBE)


@pytest.mark.asyncio
async def test_get_availability_counts(store, seed):
    await seed("a", used=10, limit=10)
    await seed("b", used=1, limit=10)
    await seed("c", used=99, limit=0)
    await seed("off", active=False)
    selector = CredentialSelector(store, {ProviderType.YOUTUBE: ENV_SECRET})

    stats = await selector.get_availability(OWNER, ProviderType.YOUTUBE)

    assert stats == {
        "provider_type": "youtube",
        "active": 3,
        "usable": 2,
        "exhausted": 1,
        "fallback_configured": True,
    }
