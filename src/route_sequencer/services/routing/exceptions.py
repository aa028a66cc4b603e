"""Routing error types."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """A routing provider could not produce a usable answer.

    Raised for network errors, timeouts, non-success statuses and malformed
    response bodies alike; callers treat every variant as "try the next tier".
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
