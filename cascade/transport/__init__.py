"""Transports - the asynchronous call primitive services run on."""

from .base import ABORTED, CallHandle, ServiceRequest, Transport
from .deferred import DeferredTransport, PendingCall
from .http import NO_EVENT_LOOP, AsyncHttpTransport, SettledHandle, TaskHandle

__all__ = [
    "ABORTED",
    "CallHandle",
    "ServiceRequest",
    "Transport",
    "DeferredTransport",
    "PendingCall",
    "AsyncHttpTransport",
    "TaskHandle",
    "SettledHandle",
    "NO_EVENT_LOOP",
]
