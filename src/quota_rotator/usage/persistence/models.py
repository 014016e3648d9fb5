# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""ORM mapping for stored API credentials."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Integer, String, Text, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ...core.constants import CREDENTIALS_TABLE_NAME
from ...core.types import ProviderType


class Base(DeclarativeBase):
    pass


class CredentialRecord(Base):
    """
    One API key/secret for one provider, owned by one user.

    quota_limit of 0 means unlimited. quota_used only ever grows and is
    written exclusively through CredentialStore.increment_usage().
    """

    __tablename__ = CREDENTIALS_TABLE_NAME
    __table_args__ = (
        Index("ix_api_credentials_owner_type", "owner_id", "provider_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    provider_type: Mapped[ProviderType] = mapped_column(
        Enum(
            ProviderType,
            name="api_credential_type",
            native_enum=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    secret_value: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    quota_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quota_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CredentialRecord(id={self.id}, owner_id={self.owner_id}, "
            f"provider_type={self.provider_type}, quota={self.quota_used}/{self.quota_limit})>"
        )
