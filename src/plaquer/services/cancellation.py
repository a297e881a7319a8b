"""Cancellation tokens for geocoding and routing requests."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class RequestCancelled(Exception):
    """Raised by ``CancellationToken.raise_if_cancelled``."""


class CancellationToken:
    """Marks an async request whose result must be discarded once cancelled.

    Collaborators may check ``cancelled`` between I/O steps; the engine checks
    it again before applying a result.
    """

    __slots__ = ("purpose", "_cancelled")

    def __init__(self, purpose: str = "") -> None:
        self.purpose = purpose
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled(self.purpose)

    def __repr__(self) -> str:
        return f"CancellationToken(purpose={self.purpose!r}, cancelled={self._cancelled})"


class PendingRequests:
    """Keeps one live token per purpose; a newer request cancels the older one."""

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def issue(self, purpose: str) -> CancellationToken:
        previous = self._tokens.get(purpose)
        if previous is not None and not previous.cancelled:
            logger.debug(f"Superseding pending '{purpose}' request")
            previous.cancel()
        token = CancellationToken(purpose)
        self._tokens[purpose] = token
        return token

    def release(self, token: CancellationToken) -> None:
        if self._tokens.get(token.purpose) is token:
            del self._tokens[token.purpose]

    def cancel(self, purpose: str) -> None:
        token = self._tokens.pop(purpose, None)
        if token is not None:
            token.cancel()

    def cancel_all(self) -> None:
        for token in self._tokens.values():
            token.cancel()
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)
