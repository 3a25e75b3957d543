"""Notifications emitted for external observers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedbackAdded:
    course: str
    ipfs_hash: str


@dataclass(frozen=True)
class TokenMinted:
    recipient: str
    token_id: int
    token_uri: str


@dataclass(frozen=True)
class BaseTokenContractsURIUpdated:
    base_uri: str


Listener = Callable[[Any], None]


class EventEmitter:
    """
    Fan-out of events to subscribed listeners, with a local history.

    Listener errors are logged and do not undo the committed call.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self.history: List[Any] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def emit(self, event: Any) -> None:
        self.history.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("event listener failed for %r", event)
