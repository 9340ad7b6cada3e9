"""Correlated confirmation handshake between the relay and the user interface."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional

from ..cancellation import CancellationToken
from ..events import (
    CONFIRM_REQUEST_TOPIC,
    CONFIRM_RESPONSE_TOPIC,
    ConfirmationRequest,
    ConfirmationResponse,
    EventBus,
    Resolution,
)
from ..exceptions import DuplicateRequestError, OperationCancelledError
from ..logger import get_logger
from .policy import AutoApproveRule, default_auto_approve

logger = get_logger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT = 30.0


class ConfirmationChannel:
    """
    Publishes confirmation requests on the bus and awaits the matching response.

    Each outstanding request is a future keyed by invocation id. The future is
    settled by the first of: a response with the same id, the timeout, or the
    cancellation token. Whatever settles it, the response subscription and the
    token listener are removed before the call returns.
    """

    def __init__(
        self,
        bus: EventBus,
        auto_approve: AutoApproveRule = default_auto_approve,
        timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    ) -> None:
        """
        Args:
            bus: Bus carrying confirmation requests and responses.
            auto_approve: Default predicate for calls that skip confirmation.
            timeout: Seconds to wait for an answer before resolving as rejected.
        """
        self._bus = bus
        self._auto_approve = auto_approve
        self._timeout = timeout
        self._pending: Dict[str, asyncio.Future[bool]] = {}

    @property
    def pending_ids(self) -> frozenset:
        return frozenset(self._pending)

    def is_auto_approved(self, name: str, args: Mapping[str, Any], rule: Optional[AutoApproveRule] = None) -> bool:
        return (rule or self._auto_approve)(name, args)

    async def request_confirmation(
        self,
        invocation_id: str,
        name: str,
        args: Mapping[str, Any],
        auto_approve: Optional[AutoApproveRule] = None,
        token: Optional[CancellationToken] = None,
    ) -> bool:
        """Ask the user to approve a tool call.

        Args:
            invocation_id: Correlation id of the invocation.
            name: Tool name.
            args: Arguments the tool would receive.
            auto_approve: Overrides the channel's predicate for this call.
            token: Turn cancellation token.

        Returns:
            True if approved (or auto-approved), False if rejected or timed out.

        Raises:
            DuplicateRequestError: If a request with this id is already outstanding.
            OperationCancelledError: If the token fires before an answer arrives.
        """
        resolution = await self.negotiate(invocation_id, name, args, auto_approve=auto_approve, token=token)
        return resolution is Resolution.ACCEPTED

    async def negotiate(
        self,
        invocation_id: str,
        name: str,
        args: Mapping[str, Any],
        auto_approve: Optional[AutoApproveRule] = None,
        token: Optional[CancellationToken] = None,
    ) -> Resolution:
        """Like :meth:`request_confirmation` but reports how the request was settled.

        Cancellation is raised rather than returned, so the only results are
        ACCEPTED, REJECTED and TIMEOUT.
        """
        if invocation_id in self._pending:
            msg = f"Confirmation for '{invocation_id}' is already outstanding."
            logger.error(msg)
            raise DuplicateRequestError(msg)

        if self.is_auto_approved(name, args, auto_approve):
            logger.debug("Tool '%s' auto-approved (id=%s).", name, invocation_id)
            return Resolution.ACCEPTED

        if token is not None:
            token.raise_if_cancelled()

        loop = asyncio.get_running_loop()
        future: asyncio.Future[bool] = loop.create_future()
        self._pending[invocation_id] = future
        request = ConfirmationRequest(id=invocation_id, name=name, args=dict(args or {}))

        def on_response(response: ConfirmationResponse) -> None:
            if response.id == invocation_id and not future.done():
                future.set_result(bool(response.accepted))

        def on_cancel() -> None:
            if not future.done():
                future.set_exception(OperationCancelledError(token.reason if token else None))

        unsubscribe = self._bus.subscribe(CONFIRM_RESPONSE_TOPIC, on_response)
        unlink = token.on_cancel(on_cancel) if token is not None else None
        try:
            logger.info("Requesting confirmation for tool '%s' (id=%s).", name, invocation_id)
            self._bus.publish(CONFIRM_REQUEST_TOPIC, request)
            try:
                accepted = await asyncio.wait_for(future, timeout=self._timeout)
            except asyncio.TimeoutError:
                request.resolution = Resolution.TIMEOUT
                logger.warning("Confirmation for '%s' timed out after %ss.", invocation_id, self._timeout)
                return Resolution.TIMEOUT
            except OperationCancelledError:
                request.resolution = Resolution.CANCELLED
                logger.info("Confirmation for '%s' cancelled.", invocation_id)
                raise

            request.resolution = Resolution.ACCEPTED if accepted else Resolution.REJECTED
            logger.info("Confirmation for '%s' resolved: %s.", invocation_id, request.resolution.value)
            return request.resolution
        finally:
            unsubscribe()
            if unlink is not None:
                unlink()
            self._pending.pop(invocation_id, None)

    def respond(self, invocation_id: str, accepted: bool) -> None:
        """Publish the user's answer for ``invocation_id``."""
        self._bus.publish(CONFIRM_RESPONSE_TOPIC, ConfirmationResponse(id=invocation_id, accepted=accepted))
