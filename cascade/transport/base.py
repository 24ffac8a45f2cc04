"""
Transport interface - The asynchronous call primitive services run on.

A transport receives a fully resolved ServiceRequest and two callbacks.
It must return immediately; exactly one of the callbacks is invoked later,
whenever the call completes. Networking, retries and serialization are
the transport's business, not the engine's.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[str, Any], None]

ABORTED = "Aborted"


@dataclass
class ServiceRequest:
    """A resolved service call, ready to hand to a transport."""
    service_id: str
    url: str
    method: str = "GET"
    data: Any = None
    content_type: str | None = None
    data_type: str = "json"
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


class CallHandle(Protocol):
    """Handle on an in-flight call."""

    def abort(self) -> None:
        """Cancel the call, best effort."""
        ...


class Transport(Protocol):
    def invoke(
        self,
        request: ServiceRequest,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> CallHandle:
        ...
