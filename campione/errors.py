"""Campione error hierarchy and exceptions."""

from __future__ import annotations


class CampioneError(Exception):
    """Base exception for all Campione errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(CampioneError):
    """Raised when a configuration source cannot be read or parsed."""
    pass


class ValidationError(CampioneError):
    """Raised when validation fails."""
    pass


class RateTableError(ValidationError):
    """Raised when a remote rate-by-service table cannot be decoded.

    The priority sampler keeps its previous table when this is raised.
    """
    pass
