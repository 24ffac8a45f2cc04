"""
Deferred Transport - Holds calls until the host settles them.

Useful when the host drives completion itself (tests, replays, bridges to
another event loop):

    transport = DeferredTransport()
    engine = Engine(descriptor, transport=transport)
    engine.call("user")
    transport.resolve("user", {"name": "alice"})
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .base import ABORTED, ErrorCallback, ServiceRequest, SuccessCallback


@dataclass
class PendingCall:
    """A call issued through the deferred transport."""
    request: ServiceRequest
    on_success: SuccessCallback = field(repr=False)
    on_error: ErrorCallback = field(repr=False)
    settled: bool = False
    aborted: bool = False

    def abort(self) -> None:
        if self.settled:
            return
        self.settled = True
        self.aborted = True
        self.on_error(ABORTED, None)


class DeferredTransport:
    """Transport whose calls complete only when resolved or rejected."""

    def __init__(self):
        self.calls: list[PendingCall] = []

    def invoke(
        self,
        request: ServiceRequest,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> PendingCall:
        call = PendingCall(request=request, on_success=on_success, on_error=on_error)
        self.calls.append(call)
        return call

    def pending(self, service_id: str | None = None) -> list[PendingCall]:
        """Unsettled calls, oldest first."""
        return [
            c for c in self.calls
            if not c.settled and (service_id is None or c.request.service_id == service_id)
        ]

    def _next(self, service_id: str) -> PendingCall:
        calls = self.pending(service_id)
        if not calls:
            raise LookupError(f'No pending call for service "{service_id}"')
        return calls[0]

    def resolve(self, service_id: str, payload: Any = None) -> PendingCall:
        """Complete the oldest pending call of a service successfully."""
        call = self._next(service_id)
        call.settled = True
        call.on_success(payload)
        return call

    def reject(self, service_id: str, message: str, response: Any = None) -> PendingCall:
        """Fail the oldest pending call of a service."""
        call = self._next(service_id)
        call.settled = True
        call.on_error(message, response)
        return call
