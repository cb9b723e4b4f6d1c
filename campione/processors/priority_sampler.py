"""Priority sampling from remotely supplied per-service rates."""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Annotated, Any, Dict, Mapping, NamedTuple, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from campione.constants import (
    AUTO_KEEP,
    AUTO_REJECT,
    DEFAULT_RATE_KEY,
    SAMPLING_AGENT_DECISION,
    SAMPLING_PRIORITY_KEY,
)
from campione.errors import RateTableError
from campione.processors.sampler import sampled_by_rate
from campione.tracer.span import Span

logger = logging.getLogger(__name__)

Rate = Annotated[float, Field(ge=0.0, le=1.0)]


class RateByServicePayload(BaseModel):
    """Remote rate table document: ``{"rate_by_service": {key: rate}}``."""

    rate_by_service: Dict[str, Rate] = Field(default_factory=dict)


class RateTable(NamedTuple):
    """Immutable snapshot of the priority sampler state."""

    rates: Mapping[str, float]
    default_rate: float


class PrioritySampler:
    """
    Holds a set of per-service-and-environment rates and applies them to spans.

    The table is replaced as a whole on every update: readers take one
    reference to the current snapshot, so they never see a half-updated table.
    """

    def __init__(self, default_rate: float = 1.0) -> None:
        self._table = RateTable(MappingProxyType({}), float(default_rate))
        self._lock = threading.Lock()

    @staticmethod
    def key(service: Optional[str], env: Optional[str]) -> str:
        """Compute a key with the same format used by the remote rate table."""
        return f"service:{service or ''},env:{env or ''}"

    @property
    def rates(self) -> Dict[str, float]:
        return dict(self._table.rates)

    @property
    def default_rate(self) -> float:
        return self._table.default_rate

    def update_table(self, document: Any) -> None:
        """
        Replace the rate table from a remote document.

        Args:
            document: JSON ``str``/``bytes``, a readable file object (closed
                after reading) or an already decoded mapping

        Raises:
            RateTableError: If the document cannot be decoded. The current
                table and default rate are kept.
        """
        payload = _decode_payload(document)
        rates = dict(payload.rate_by_service)

        with self._lock:
            default_rate = rates.pop(DEFAULT_RATE_KEY, self._table.default_rate)
            self._table = RateTable(MappingProxyType(rates), default_rate)

        logger.debug(
            "Updated priority sampler with %d service rates, default rate %s",
            len(rates),
            default_rate,
        )

    def rate_for(self, span: Span) -> float:
        """Return the sampling rate to use for the given span."""
        table = self._table
        return table.rates.get(self.key(span.service, span.environment), table.default_rate)

    def apply(self, span: Span) -> None:
        """Tag the span with a keep/reject priority and the rate applied."""
        rate = self.rate_for(span)
        if sampled_by_rate(span.trace_id, rate):
            span.set_attribute(SAMPLING_PRIORITY_KEY, AUTO_KEEP)
        else:
            span.set_attribute(SAMPLING_PRIORITY_KEY, AUTO_REJECT)
        span.set_attribute(SAMPLING_AGENT_DECISION, rate)

    def __repr__(self) -> str:
        table = self._table
        return f"PrioritySampler(rates={dict(table.rates)!r}, default_rate={table.default_rate})"


def _decode_payload(document: Any) -> RateByServicePayload:
    try:
        if hasattr(document, "read"):
            stream = document
            try:
                document = stream.read()
            finally:
                stream.close()
        if isinstance(document, (str, bytes, bytearray)):
            return RateByServicePayload.model_validate_json(document)
        return RateByServicePayload.model_validate(document)
    except (PydanticValidationError, UnicodeDecodeError, OSError) as e:
        raise RateTableError(
            "Failed to decode rate_by_service table",
            details={"error": str(e).splitlines()[0] if str(e) else type(e).__name__},
        ) from e
