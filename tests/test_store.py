# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

import asyncio

import pytest

from quota_rotator.core.errors import CredentialNotFoundError, StorageError
from quota_rotator.core.types import ProviderType
from quota_rotator.usage.persistence.store import CredentialStore

from conftest import OTHER_OWNER, OWNER


@pytest.mark.asyncio
async def test_create_defaults(store):
    cred = await store.create(OWNER, "youtube", "Main", "AIzaSecretValue123")

    assert cred.id is not None
    assert cred.provider_type is ProviderType.YOUTUBE
    assert cred.quota_used == 0
    assert cred.quota_limit == 0
    assert cred.is_active is True
    assert cred.last_used_at is None
    assert cred.created_at is not None


@pytest.mark.asyncio
async def test_create_rejects_invalid_input(store):
    with pytest.raises(ValueError):
        await store.create(OWNER, ProviderType.YOUTUBE, "Bad", "secret", quota_limit=-1)
    with pytest.raises(ValueError):
        await store.create(OWNER, "not-a-provider", "Bad", "secret")
    with pytest.raises(ValueError):
        await store.create(OWNER, ProviderType.YOUTUBE, "Bad", "")


@pytest.mark.asyncio
async def test_list_active_orders_by_usage_then_id(store, seed):
    a = await seed("a", used=10, limit=100)
    b = await seed("b", used=5, limit=100)
    c = await seed("c", used=5, limit=100)
    await seed("inactive", used=0, active=False)
    await seed("openai", used=0, provider_type=ProviderType.OPENAI)
    await seed("other-owner", used=0, owner_id=OTHER_OWNER)

    listed = await store.list_active_by_owner_and_type(OWNER, ProviderType.YOUTUBE)

    assert [cred.id for cred in listed] == [b.id, c.id, a.id]
    assert all(cred.secret_value for cred in listed)


@pytest.mark.asyncio
async def test_list_by_owner_hides_secrets(store, seed):
    await seed("a", used=3, limit=10, secret="AIzaVerySecretKey9876")
    await seed("b", active=False)

    summaries = await store.list_by_owner(OWNER)

    assert len(summaries) == 2
    assert not hasattr(summaries[0], "secret_value")
    assert summaries[0].secret_preview == "...9876"
    assert summaries[1].is_active is False


@pytest.mark.asyncio
async def test_get_by_id_missing_returns_none(store):
    assert await store.get_by_id(12345) is None


@pytest.mark.asyncio
async def test_update_patches_fields_and_refreshes_updated_at(store, seed):
    cred = await seed("a", limit=10)

    updated = await store.update(cred.id, display_name="Renamed", quota_limit=50)

    assert updated.display_name == "Renamed"
    assert updated.quota_limit == 50
    assert updated.secret_value == cred.secret_value
    assert updated.updated_at >= cred.updated_at


@pytest.mark.asyncio
async def test_update_rejects_immutable_fields(store, seed):
    cred = await seed("a")

    with pytest.raises(ValueError):
        await store.update(cred.id, quota_used=0)
    with pytest.raises(ValueError):
        await store.update(cred.id, owner_id=OTHER_OWNER)


@pytest.mark.asyncio
async def test_rotate_replaces_only_secret(store, seed):
    cred = await seed("a", used=4, limit=10)

    rotated = await store.rotate(cred.id, "new-secret-value-0000")

    assert rotated.secret_value == "new-secret-value-0000"
    assert rotated.quota_used == 4
    assert rotated.quota_limit == 10
    assert rotated.display_name == "a"


@pytest.mark.asyncio
async def test_increment_usage_adds_and_stamps(store, seed):
    cred = await seed("a", limit=10)

    after = await store.increment_usage(cred.id, 3)

    assert after.quota_used == 3
    assert after.last_used_at is not None
    assert (await store.increment_usage(cred.id, 0)).quota_used == 3


@pytest.mark.asyncio
async def test_concurrent_increments_do_not_lose_updates(store, seed):
    cred = await seed("a", limit=100)

    await asyncio.gather(
        store.increment_usage(cred.id, 5),
        store.increment_usage(cred.id, 5),
    )

    assert (await store.get_by_id(cred.id)).quota_used == 10


@pytest.mark.asyncio
async def test_many_concurrent_increments(store, seed):
    cred = await seed("a")

    await asyncio.gather(*(store.increment_usage(cred.id, 1) for _ in range(20)))

    assert (await store.get_by_id(cred.id)).quota_used == 20


@pytest.mark.asyncio
async def test_increment_rejects_bad_units(store, seed):
    cred = await seed("a")

    with pytest.raises(ValueError):
        await store.increment_usage(cred.id, -1)
    with pytest.raises(ValueError):
        await store.increment_usage(cred.id, 1.5)


@pytest.mark.asyncio
async def test_missing_id_signals_not_found(store):
    with pytest.raises(CredentialNotFoundError):
        await store.update(999, display_name="x")
    with pytest.raises(CredentialNotFoundError):
        await store.increment_usage(999, 1)
    with pytest.raises(CredentialNotFoundError):
        await store.delete(999)


@pytest.mark.asyncio
async def test_delete_removes_row(store, seed):
    cred = await seed("a")

    await store.delete(cred.id)

    assert await store.get_by_id(cred.id) is None


@pytest.mark.asyncio
async def test_database_failure_is_storage_error(tmp_path):
    # Schema never created
    store = CredentialStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    try:
        with pytest.raises(StorageError):
            await store.list_active_by_owner_and_type(OWNER, ProviderType.YOUTUBE)
    finally:
        await store.dispose()
