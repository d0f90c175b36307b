"""Cooperative cancellation checked before every backend call."""

from __future__ import annotations

from typing import Optional, Protocol

from oidc_dynamodb.core.errors import OperationCancelledError


class CancellationSignal(Protocol):
    """Anything exposing ``is_set()``, e.g. ``asyncio.Event`` or ``threading.Event``."""

    def is_set(self) -> bool:  # pragma: no cover - protocol
        ...


def raise_if_cancelled(cancellation: Optional[CancellationSignal]) -> None:
    """Raise ``OperationCancelledError`` when the signal has been set."""
    if cancellation is not None and cancellation.is_set():
        raise OperationCancelledError("Operation cancelled before contacting DynamoDB.")


__all__ = ["CancellationSignal", "raise_if_cancelled"]
