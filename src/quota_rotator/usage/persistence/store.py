# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Durable storage for API credentials.

CredentialStore is the data-access leaf of the quota rotator. It returns
plain Credential / CredentialSummary dataclasses, never ORM instances,
and converts every SQLAlchemy failure into StorageError.

Usage accounting is done with a single UPDATE statement evaluated by the
database (quota_used = quota_used + :units), so concurrent increments on
the same credential can never lose an update.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, List, Optional, Union

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ...core.errors import CredentialNotFoundError, StorageError
from ...core.types import Credential, CredentialSummary, ProviderType
from .models import Base, CredentialRecord

lib_logger = logging.getLogger("quota_rotator")

_table = CredentialRecord.__table__

# Fields the administrative update path may change.
# quota_used is deliberately absent: only increment_usage() writes it.
UPDATABLE_FIELDS = frozenset({"display_name", "secret_value", "is_active", "quota_limit"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_credential(row: Any) -> Credential:
    """Build a Credential from an ORM instance or a RETURNING row."""
    return Credential(
        id=row.id,
        owner_id=row.owner_id,
        provider_type=ProviderType(row.provider_type),
        display_name=row.display_name,
        secret_value=row.secret_value,
        is_active=bool(row.is_active),
        quota_limit=row.quota_limit or 0,
        quota_used=row.quota_used or 0,
        last_used_at=_as_utc(row.last_used_at),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _validate_quota_limit(quota_limit: Any) -> None:
    if isinstance(quota_limit, bool) or not isinstance(quota_limit, int):
        raise ValueError(f"quota_limit must be an integer, got {quota_limit!r}")
    if quota_limit < 0:
        raise ValueError(f"quota_limit must be non-negative, got {quota_limit}")


class CredentialStore:
    """
    Async data access for Credential rows.

    Example:
        store = CredentialStore.from_url("sqlite+aiosqlite:///quota.db")
        await store.create_schema()
        cred = await store.create("user-1", ProviderType.YOUTUBE, "Main", "AIza...")
        await store.increment_usage(cred.id, 3)
    """

    def __init__(self, engine: AsyncEngine):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy async engine owning the connection pool
        """
        self._engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: Any) -> "CredentialStore":
        """Create a store with its own engine for the given database URL."""
        return cls(create_async_engine(database_url, **engine_kwargs))

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def create_schema(self) -> None:
        """Create the credentials table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create credential schema: {exc}") from exc

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self._engine.dispose()

    # =========================================================================
    # READS
    # =========================================================================

    async def list_active_by_owner_and_type(
        self,
        owner_id: str,
        provider_type: Union[ProviderType, str],
    ) -> List[Credential]:
        """
        List active credentials for selection, least-used first.

        Returns the full projection (with secrets). Internal callers only.

        Args:
            owner_id: Owning user
            provider_type: Provider family

        Returns:
            Credentials ordered by ascending quota_used, ties by ascending id
        """
        provider_type = ProviderType(provider_type)
        stmt = (
            select(CredentialRecord)
            .where(
                CredentialRecord.owner_id == owner_id,
                CredentialRecord.provider_type == provider_type,
                CredentialRecord.is_active.is_(True),
            )
            .order_by(CredentialRecord.quota_used.asc(), CredentialRecord.id.asc())
        )
        async with self._session("list active credentials") as session:
            records = (await session.scalars(stmt)).all()
            return [_to_credential(record) for record in records]

    async def list_by_owner(self, owner_id: str) -> List[CredentialSummary]:
        """
        List every credential of an owner in the display-safe projection.

        Inactive and exhausted credentials are included.
        """
        stmt = (
            select(CredentialRecord)
            .where(CredentialRecord.owner_id == owner_id)
            .order_by(CredentialRecord.id.asc())
        )
        async with self._session("list credentials") as session:
            records = (await session.scalars(stmt)).all()
            return [_to_credential(record).to_summary() for record in records]

    async def get_by_id(self, credential_id: int) -> Optional[Credential]:
        """Get a credential by id, or None if it does not exist."""
        async with self._session("get credential") as session:
            record = await session.get(CredentialRecord, credential_id)
            return _to_credential(record) if record is not None else None

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create(
        self,
        owner_id: str,
        provider_type: Union[ProviderType, str],
        display_name: str,
        secret_value: str,
        quota_limit: int = 0,
        is_active: bool = True,
    ) -> Credential:
        """
        Register a new credential.

        Args:
            owner_id: Owning user (immutable)
            provider_type: Provider family (immutable)
            display_name: Human-readable label
            secret_value: The API key itself
            quota_limit: Usage ceiling, 0 = unlimited
            is_active: Whether the credential may be selected

        Returns:
            The created credential with quota_used = 0
        """
        provider_type = ProviderType(provider_type)
        _validate_quota_limit(quota_limit)
        if not secret_value:
            raise ValueError("secret_value must not be empty")

        now = _utcnow()
        record = CredentialRecord(
            owner_id=owner_id,
            provider_type=provider_type,
            display_name=display_name,
            secret_value=secret_value,
            is_active=is_active,
            quota_limit=quota_limit,
            quota_used=0,
            created_at=now,
            updated_at=now,
        )
        async with self._session("create credential") as session:
            session.add(record)
            await session.commit()
            credential = _to_credential(record)

        lib_logger.debug(
            f"Created {provider_type.value} credential {credential.id} for owner {owner_id}"
        )
        return credential

    async def update(self, credential_id: int, **changes: Any) -> Credential:
        """
        Patch mutable fields of a credential.

        Used for edits, activation toggling and rotation.

        Args:
            credential_id: Credential to update
            **changes: Any of display_name, secret_value, is_active, quota_limit

        Returns:
            The updated credential

        Raises:
            CredentialNotFoundError: If the id does not exist
            ValueError: On unknown/immutable fields or invalid values
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if "quota_limit" in changes:
            _validate_quota_limit(changes["quota_limit"])
        if "secret_value" in changes and not changes["secret_value"]:
            raise ValueError("secret_value must not be empty")

        stmt = (
            update(_table)
            .where(_table.c.id == credential_id)
            .values(**changes, updated_at=_utcnow())
            .returning(*_table.c)
        )
        return await self._execute_returning(stmt, credential_id, "update credential")

    async def rotate(self, credential_id: int, new_secret_value: str) -> Credential:
        """Replace only the secret value of a credential."""
        return await self.update(credential_id, secret_value=new_secret_value)

    async def increment_usage(self, credential_id: int, units: int) -> Credential:
        """
        Atomically add units to quota_used and stamp last_used_at.

        Evaluated by the database as a single UPDATE ... RETURNING, never a
        read-modify-write from application memory.

        Args:
            credential_id: Credential to charge
            units: Non-negative integer cost

        Returns:
            The post-increment credential

        Raises:
            CredentialNotFoundError: If the id does not exist
        """
        if isinstance(units, bool) or not isinstance(units, int) or units < 0:
            raise ValueError(f"units must be a non-negative integer, got {units!r}")

        now = _utcnow()
        stmt = (
            update(_table)
            .where(_table.c.id == credential_id)
            .values(
                quota_used=_table.c.quota_used + units,
                last_used_at=now,
                updated_at=now,
            )
            .returning(*_table.c)
        )
        return await self._execute_returning(stmt, credential_id, "increment usage")

    async def delete(self, credential_id: int) -> None:
        """
        Delete a credential immediately and unconditionally.

        Raises:
            CredentialNotFoundError: If the id does not exist
        """
        stmt = delete(_table).where(_table.c.id == credential_id)
        async with self._session("delete credential") as session:
            result = await session.execute(stmt)
            await session.commit()
            deleted = result.rowcount

        if not deleted:
            raise CredentialNotFoundError(credential_id)
        lib_logger.debug(f"Deleted credential {credential_id}")

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session, converting database failures into StorageError."""
        try:
            async with self._sessionmaker() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to {action}: {exc}") from exc

    async def _execute_returning(
        self, stmt: Any, credential_id: int, action: str
    ) -> Credential:
        async with self._session(action) as session:
            result = await session.execute(stmt)
            row = result.one_or_none()
            await session.commit()

        if row is None:
            raise CredentialNotFoundError(credential_id)
        return _to_credential(row)
