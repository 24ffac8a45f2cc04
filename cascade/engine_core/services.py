"""
Service Orchestrator - Remote calls wired into the reactive graph.

call(id, params):
1. Merge per-call overrides over the service config (scalars override,
   events accumulate)
2. Resolve callable url / data under a call scope
3. Expand shortcut tokens in the url (repeatedly) and in data (one level)
4. Abort the in-flight call for this service if asked to
5. Invoke the transport and return immediately

Completion re-enters the engine at an arbitrary later time:
- success: extract `path`, write it to `setter`, run `success`, then the
  shared merge step, then the main loop on the dispatched events
- failure: publish SERVICE_FAILED, run `error`, same merge step

At most one in-flight call per service id is tracked.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import re

from pydantic import ValidationError

from ..schema.models import CallOverrides, ServiceOptions
from ..transport.base import CallHandle, ServiceRequest, Transport
from .events import SERVICE_FAILED, as_names
from .reconciler import PendingEffects
from .scope import ExecutionResult, ScopeLevel, execute

if TYPE_CHECKING:
    from .engine import Engine

PATH_PATTERN = re.compile(r"^(?:\w+\.)*\w+$")

_MISSING = object()


@dataclass
class InFlightCall:
    ticket: object
    handle: CallHandle


class ServiceOrchestrator:
    """Owns service configs and the in-flight call table."""

    def __init__(self, engine: Engine, transport: Transport):
        self._engine = engine
        self.transport = transport
        self._services: dict[str, ServiceOptions] = {}
        self._current_calls: dict[str, InFlightCall] = {}

    @property
    def diagnostics(self):
        return self._engine.diagnostics

    def __contains__(self, service_id: Any) -> bool:
        return service_id in self._services

    def in_flight(self, service_id: str) -> CallHandle | None:
        current = self._current_calls.get(service_id)
        return current.handle if current else None

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, options: ServiceOptions | Mapping[str, Any]) -> ServiceOptions:
        """Register a service; fails fatally on a missing/duplicate id or a bad url."""
        if isinstance(options, Mapping):
            options = ServiceOptions.model_validate(options)

        if not isinstance(options.id, str) or not options.id:
            self.diagnostics.die("The service id is not indicated.")
        if not (isinstance(options.url, str) or callable(options.url)):
            self.diagnostics.die("The service URL is not valid.")
        if options.id in self._services:
            self.diagnostics.die(f'The service "{options.id}" already exists.')

        self._services[options.id] = options
        return options

    # =========================================================================
    # Calls
    # =========================================================================

    def call(self, service_id: str, params: CallOverrides | Mapping[str, Any] | None = None) -> None:
        """Issue a call. Unknown services and invalid overrides are diagnosed and skipped."""
        config = self._services.get(service_id)
        if config is None:
            self.diagnostics.warn(f'Service "{service_id}" not referenced.')
            return

        try:
            overrides = (
                params if isinstance(params, CallOverrides)
                else CallOverrides.model_validate(params or {})
            )
        except ValidationError as exc:
            self.diagnostics.warn(f'Service "{service_id}": invalid call parameters: {exc}')
            return

        self.diagnostics.dump(f'Calling service "{service_id}".')
        request, queued = self._build_request(config, overrides)

        if overrides.abort and service_id in self._current_calls:
            self._current_calls.pop(service_id).handle.abort()

        ticket = object()
        settled = False

        def on_success(response: Any) -> None:
            nonlocal settled
            settled = True
            self._forget(service_id, ticket)
            self._complete_success(config, overrides, response)

        def on_error(message: str, response: Any = None) -> None:
            nonlocal settled
            settled = True
            self._forget(service_id, ticket)
            self._complete_error(config, overrides, message, response)

        handle = self.transport.invoke(request, on_success, on_error)
        if not settled:
            self._current_calls[service_id] = InFlightCall(ticket=ticket, handle=handle)

        for call in queued:
            self.call(call.service, call.params)

    def _forget(self, service_id: str, ticket: object) -> None:
        current = self._current_calls.get(service_id)
        if current is not None and current.ticket is ticket:
            del self._current_calls[service_id]

    def _build_request(
        self, config: ServiceOptions, overrides: CallOverrides
    ) -> tuple[ServiceRequest, list]:
        """Resolve the effective request; returns it with calls queued by url/data closures."""
        shortcuts = self._engine.shortcuts
        fallbacks = overrides.params or {}
        queued = []

        def resolve(value: Any) -> Any:
            if not callable(value):
                return value
            result: ExecutionResult = execute(
                self._engine, value, params=(overrides.data,), level=ScopeLevel.CALL
            )
            queued.extend(result.service_calls)
            return result.returned_value

        if callable(config.data):
            data = resolve(config.data)
        else:
            data = overrides.data if overrides.data is not None else config.data

        url = resolve(overrides.url if overrides.url is not None else config.url)
        if not isinstance(url, str):
            self.diagnostics.die(f'The URL is no more a string (typed "{type(url).__name__}")')

        url = shortcuts.expand_string(url, fallbacks)
        data = shortcuts.expand_data(data, fallbacks)

        request = ServiceRequest(
            service_id=config.id,
            url=url,
            method=str(overrides.method or config.method or "GET").upper(),
            data=data,
            content_type=overrides.content_type or config.content_type,
            data_type=overrides.data_type or config.data_type or "json",
            headers={**(config.headers or {}), **(overrides.headers or {})},
            timeout=overrides.timeout if overrides.timeout is not None else config.timeout,
        )
        return request, queued

    # =========================================================================
    # Completion
    # =========================================================================

    def _complete_success(self, config: ServiceOptions, overrides: CallOverrides, response: Any) -> None:
        self.diagnostics.dump(f'Service "{config.id}" successful.')
        shortcuts = self._engine.shortcuts
        reconciler = self._engine.reconciler
        fallbacks = overrides.params or {}
        pending = PendingEffects(self.diagnostics)

        path = overrides.path or config.path
        setter = overrides.setter or config.setter
        success = overrides.success or config.success
        if isinstance(setter, str):
            setter = shortcuts.expand(setter, fallbacks)
        if isinstance(path, str):
            path = shortcuts.expand(path, fallbacks)

        pending.add_events(as_names(config.events))
        pending.add_events(as_names(overrides.events))

        value = self.extract(config.id, response, path)
        if setter:
            if setter in self._engine.properties:
                reconciler.write(setter, value, pending)
            else:
                self.diagnostics.warn(f'Service "{config.id}": property "{setter}" not referenced.')

        if success is not None:
            result = execute(self._engine, success, params=(response, overrides), level=ScopeLevel.CALL)
            pending.absorb(result)

        reconciler.reconcile(pending)

    def _complete_error(
        self, config: ServiceOptions, overrides: CallOverrides, message: str, response: Any
    ) -> None:
        self._engine.publish(SERVICE_FAILED, {"service": config.id, "message": message})

        error = overrides.error or config.error
        if error is None:
            self.diagnostics.dump(f'Service "{config.id}" failed with message "{message}".')
            return

        pending = PendingEffects(self.diagnostics)
        result = execute(self._engine, error, params=(message, response, overrides), level=ScopeLevel.CALL)
        pending.absorb(result)
        self._engine.reconciler.reconcile(pending)

    def extract(self, service_id: str, response: Any, path: str | None) -> Any:
        """
        Walk a dot-separated path into a response.

        Segments address mapping keys or list indices. A missing segment is
        diagnosed and yields None; a malformed path leaves the response whole.
        """
        if not path:
            return response
        if not PATH_PATTERN.match(path):
            self.diagnostics.warn(f'Path "{path}" does not match {PATH_PATTERN.pattern}')
            return response

        value = response
        for segment in path.split("."):
            value = self._step(value, segment)
            if value is _MISSING:
                self.diagnostics.warn(f'Wrong path "{path}" for service "{service_id}".')
                return None
        return value

    @staticmethod
    def _step(value: Any, segment: str) -> Any:
        if isinstance(value, Mapping):
            return value.get(segment, _MISSING)
        if isinstance(value, (list, tuple)) and segment.isdecimal():
            index = int(segment)
            return value[index] if index < len(value) else _MISSING
        return _MISSING
