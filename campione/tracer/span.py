"""Span view consumed by the samplers - minimal wrapper around OpenTelemetry Span."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from opentelemetry.trace import Span as OTelSpan

from campione.constants import ENV_KEY
from campione.utils.helpers import format_trace_id, trace_id_64bits

# Resource attributes read when wrapping an OpenTelemetry span
SERVICE_NAME_RESOURCE_KEY = "service.name"
ENVIRONMENT_RESOURCE_KEY = "deployment.environment"


class Span:
    """
    The parts of a span that sampling reads and writes.

    Samplers read the trace id, service and operation name, and record their
    decisions as attributes. When the view wraps an OpenTelemetry span,
    attribute writes are mirrored onto it.
    """

    __slots__ = ("trace_id", "service", "name", "_attributes", "_otel_span")

    def __init__(
        self,
        trace_id: int,
        service: str = "",
        name: str = "",
        attributes: Optional[Dict[str, Any]] = None,
        otel_span: Optional[OTelSpan] = None,
    ) -> None:
        """
        Initialize span view.

        Args:
            trace_id: Trace id (reduced to its lower 64 bits)
            service: Service name
            name: Operation name
            attributes: Initial attributes, e.g. the ``env`` tag
            otel_span: OpenTelemetry span receiving attribute writes
        """
        self.trace_id = trace_id_64bits(trace_id)
        self.service = service or ""
        self.name = name or ""
        self._attributes: Dict[str, Any] = dict(attributes or {})
        self._otel_span = otel_span

    @classmethod
    def from_otel(
        cls,
        otel_span: OTelSpan,
        service: Optional[str] = None,
        environment: Optional[str] = None,
    ) -> "Span":
        """
        Build a view over an OpenTelemetry span.

        Service and environment default to the span's resource attributes
        (``service.name`` and ``deployment.environment``).
        """
        resource = getattr(otel_span, "resource", None)
        resource_attrs: Mapping[str, Any] = getattr(resource, "attributes", None) or {}
        if service is None:
            service = str(resource_attrs.get(SERVICE_NAME_RESOURCE_KEY, ""))
        if environment is None:
            environment = str(resource_attrs.get(ENVIRONMENT_RESOURCE_KEY, ""))

        attributes = dict(getattr(otel_span, "attributes", None) or {})
        if environment:
            attributes.setdefault(ENV_KEY, environment)

        return cls(
            trace_id=otel_span.get_span_context().trace_id,
            service=service,
            name=getattr(otel_span, "name", ""),
            attributes=attributes,
            otel_span=otel_span,
        )

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Read-only view of the span attributes."""
        return MappingProxyType(self._attributes)

    @property
    def environment(self) -> str:
        """Deployment environment from the ``env`` tag, empty when unset."""
        return str(self._attributes.get(ENV_KEY) or "")

    def set_attribute(self, key: str, value: Any) -> None:
        """Set an attribute on the span."""
        self._attributes[key] = value
        if self._otel_span is not None and self._otel_span.is_recording():
            self._otel_span.set_attribute(key, value)

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def __repr__(self) -> str:
        return (
            f"Span(trace_id={format_trace_id(self.trace_id)}, "
            f"service={self.service!r}, name={self.name!r})"
        )
