"""Subscriber lists used by the managers for change notification."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

_logger = logging.getLogger(__name__)

CallbackT = TypeVar("CallbackT", bound=Callable[..., None])


class Subscribers(Generic[CallbackT]):
    """Ordered set of callbacks with explicit unsubscribe.

    A callback that raises is logged and skipped; delivery to the
    remaining subscribers continues and the error never reaches the
    state transition that triggered the notification.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._callbacks: list[CallbackT] = []

    def subscribe(self, callback: CallbackT) -> Callable[[], None]:
        """Add *callback* (once) and return a callable that removes it."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: CallbackT) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, *args: Any) -> None:
        for callback in list(self._callbacks):
            try:
                callback(*args)
            except Exception:
                _logger.debug("%s subscriber failed", self._name, exc_info=True)

    def clear(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)
