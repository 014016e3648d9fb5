# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

from typing import Optional

import pytest
import pytest_asyncio

from quota_rotator.core.types import Credential, ProviderType
from quota_rotator.usage.persistence.store import CredentialStore

OWNER = "user-1"
OTHER_OWNER = "user-2"


@pytest_asyncio.fixture
async def store(tmp_path):
    """A CredentialStore backed by a fresh SQLite file."""
    store = CredentialStore.from_url(
        f"sqlite+aiosqlite:///{tmp_path / 'credentials.db'}"
    )
    await store.create_schema()
    yield store
    await store.dispose()


@pytest.fixture
def seed(store):
    """Create a credential with a given starting usage."""

    async def _seed(
        name: str,
        used: int = 0,
        limit: int = 0,
        provider_type: ProviderType = ProviderType.YOUTUBE,
        owner_id: str = OWNER,
        active: bool = True,
        secret: Optional[str] = None,
    ) -> Credential:
        credential = await store.create(
            owner_id=owner_id,
            provider_type=provider_type,
            display_name=name,
            secret_value=secret or f"secret-{name}-0123456789",
            quota_limit=limit,
            is_active=active,
        )
        if used:
            credential = await store.increment_usage(credential.id, used)
        return credential

    return _seed
