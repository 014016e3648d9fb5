# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
Base class for metered provider gateways.

A gateway is the only path to a metered external API. Every call goes
through the same sequence:

1. Reuse the owner's cached selection, or ask the selector for one
2. Invoke the remote call with that secret
3. On success, record the cost and drop the cache if the credential
   just reached its ceiling or no longer exists
4. On a provider rejection of the key, drop the cache and raise
5. On any other failure, keep the cache and raise

Steps 2-4 run in a task shielded from caller cancellation, so a call
that completes after its request was aborted is still charged.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..core.errors import (
    CredentialNotFoundError,
    CredentialRejectedError,
    RemoteProviderError,
)
from ..core.types import (
    CallOutcome,
    ProviderCallResult,
    ProviderType,
    RecordingStatus,
    SelectedCredential,
)
from ..usage.selection.engine import CredentialSelector
from ..usage.tracking.engine import UsageRecorder

lib_logger = logging.getLogger("quota_rotator")

# Takes the secret to use; returns ProviderCallResult.ok(value, units)
RemoteCall = Callable[[str], Awaitable[ProviderCallResult]]


class ProviderGateway:
    """
    Selection + remote call + usage recording for one provider type.

    Holds one cached SelectedCredential per owner. Subclasses implement
    classify_error() and build their operations on top of _execute().
    """

    provider_type: ProviderType = ProviderType.OTHER

    def __init__(self, selector: CredentialSelector, recorder: UsageRecorder):
        self._selector = selector
        self._recorder = recorder
        self._cache: Dict[str, SelectedCredential] = {}
        self._pending: Set["asyncio.Task[ProviderCallResult]"] = set()

    # =========================================================================
    # CACHE STATE
    # =========================================================================

    def current_selection(self, owner_id: str) -> Optional[SelectedCredential]:
        """The owner's cached selection, or None when unselected."""
        return self._cache.get(owner_id)

    def invalidate_owner(self, owner_id: str) -> None:
        """Force the owner's next call to select again."""
        if self._cache.pop(owner_id, None) is not None:
            lib_logger.debug(
                f"Cleared cached {self.provider_type.value} selection for owner {owner_id}"
            )

    def invalidate_credential(
        self, credential_id: int, owner_id: Optional[str] = None
    ) -> None:
        """
        Drop every cached selection that points at a credential.

        If owner_id is given, that owner's environment fallback selection
        is dropped too, since a changed credential may now be usable.
        """
        for cached_owner, selected in list(self._cache.items()):
            if selected.credential_id == credential_id or (
                cached_owner == owner_id and selected.is_environment
            ):
                self.invalidate_owner(cached_owner)

    def clear(self) -> None:
        self._cache.clear()

    async def wait_pending(self) -> None:
        """Wait for calls whose callers were cancelled to finish recording."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # SUBCLASS HOOKS
    # =========================================================================

    def classify_error(self, error: Exception) -> ProviderCallResult:
        """
        Turn a remote-call exception into a tagged result.

        Returns ProviderCallResult.rejected() when the provider refused the
        key itself, ProviderCallResult.failure() otherwise.
        """
        return ProviderCallResult.failure(error)

    # =========================================================================
    # CALL PIPELINE
    # =========================================================================

    async def _execute(
        self,
        owner_id: str,
        operation: str,
        remote_call: RemoteCall,
    ) -> Any:
        """
        Run one metered operation for an owner.

        Args:
            owner_id: Owning user
            operation: Operation name for logs and errors
            remote_call: Coroutine function taking the secret and returning
                         a ProviderCallResult.ok(...)

        Returns:
            The operation's value

        Raises:
            ConfigurationError: No usable credential and no fallback
            StorageError: Selection could not read the store
            CredentialRejectedError: Provider refused the key
            RemoteProviderError: Any other remote failure
        """
        selected = self._cache.get(owner_id)
        if selected is None:
            selected = await self._selector.select_credential(
                owner_id, self.provider_type
            )
            self._cache[owner_id] = selected

        task = asyncio.ensure_future(
            self._call_and_record(owner_id, operation, selected, remote_call)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        result = await asyncio.shield(task)

        if result.kind == CallOutcome.SUCCEEDED:
            return result.value

        message = (
            f"{self.provider_type.value} {operation} failed: "
            f"{type(result.cause).__name__}: {result.cause}"
        )
        if result.kind == CallOutcome.REJECTED_AS_EXHAUSTED:
            raise CredentialRejectedError(
                message, self.provider_type, operation, result.status_code
            ) from result.cause
        raise RemoteProviderError(
            message, self.provider_type, operation, result.status_code
        ) from result.cause

    async def _call_and_record(
        self,
        owner_id: str,
        operation: str,
        selected: SelectedCredential,
        remote_call: RemoteCall,
    ) -> ProviderCallResult:
        try:
            result = await remote_call(selected.secret_value)
        except Exception as e:
            result = self.classify_error(e)

        if result.kind == CallOutcome.SUCCEEDED:
            outcome = await self._recorder.record_usage(selected, result.units_consumed)
            if outcome.status == RecordingStatus.RECORDED and outcome.just_exhausted:
                self._clear_if_current(owner_id, selected, "quota reached")
            elif outcome.status == RecordingStatus.FAILED and isinstance(
                outcome.cause, CredentialNotFoundError
            ):
                self._clear_if_current(owner_id, selected, "credential no longer exists")
        elif result.kind == CallOutcome.REJECTED_AS_EXHAUSTED:
            lib_logger.warning(
                f"{self.provider_type.value} rejected credential "
                f"{selected.credential_id or 'environment'} during {operation} "
                f"(status {result.status_code}): {result.cause}"
            )
            self._clear_if_current(owner_id, selected, "rejected by provider")
        else:
            lib_logger.warning(
                f"{self.provider_type.value} {operation} failed for owner {owner_id}: "
                f"{type(result.cause).__name__}: {result.cause}"
            )
        return result

    def _clear_if_current(
        self, owner_id: str, selected: SelectedCredential, reason: str
    ) -> None:
        # Another call may already have replaced the selection
        if self._cache.get(owner_id) == selected:
            del self._cache[owner_id]
            lib_logger.info(
                f"Cleared cached {self.provider_type.value} credential "
                f"{selected.credential_id or 'environment'} for owner {owner_id} ({reason})"
            )
