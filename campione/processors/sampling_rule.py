"""Sampling rules matching spans on service and operation name."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from campione.tracer.span import Span

MatcherValue = Union[None, str, re.Pattern]


class Matcher:
    """Matches a single span field."""

    def matches(self, value: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Unset(Matcher):
    """Matches any value."""

    def matches(self, value: str) -> bool:
        return True


@dataclass(frozen=True)
class Exact(Matcher):
    """Case-sensitive string equality."""

    value: str

    def matches(self, value: str) -> bool:
        return value == self.value


@dataclass(frozen=True)
class Pattern(Matcher):
    """Regular expression searched anywhere in the value."""

    regex: re.Pattern

    def matches(self, value: str) -> bool:
        return self.regex.search(value) is not None


UNSET = Unset()


def matcher(value: Union[MatcherValue, Matcher]) -> Matcher:
    """
    Build a matcher from a plain value.

    ``None`` and ``""`` match anything, a string matches exactly and a
    compiled regular expression matches by search.
    """
    if isinstance(value, Matcher):
        return value
    if value is None or value == "":
        return UNSET
    if isinstance(value, re.Pattern):
        return Pattern(value)
    if isinstance(value, str):
        return Exact(value)
    raise TypeError(f"cannot build a matcher from {value!r}")


@dataclass(frozen=True)
class SamplingRule:
    """
    Applies a sampling rate to spans matching a service, an operation or both.

    Prefer the helper functions (service_rule, operation_rule,
    service_operation_rule, rate_rule) to building rules directly.
    """

    rate: float
    service: Matcher = field(default=UNSET)
    operation: Matcher = field(default=UNSET)

    def match(self, span: Span) -> bool:
        """Return True when the span matches every matcher of the rule."""
        return self.service.matches(span.service) and self.operation.matches(span.name)


def service_rule(service: MatcherValue, rate: float) -> SamplingRule:
    return SamplingRule(rate=rate, service=matcher(service))


def operation_rule(operation: MatcherValue, rate: float) -> SamplingRule:
    return SamplingRule(rate=rate, operation=matcher(operation))


def service_operation_rule(
    service: MatcherValue, operation: MatcherValue, rate: float
) -> SamplingRule:
    return SamplingRule(rate=rate, service=matcher(service), operation=matcher(operation))


def rate_rule(rate: float) -> SamplingRule:
    """Rule applying ``rate`` to all spans."""
    return SamplingRule(rate=rate)
