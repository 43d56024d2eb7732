# src/clusterseed/observers/dispatcher.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol

from .events import BaseEvent

log = logging.getLogger("clusterseed")


class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    """
    Fans step events out to observers. A failing observer is logged and
    never interrupts the run.
    """

    def __init__(self, observers: Optional[Iterable[Observer]] = None):
        self._observers: List[Observer] = list(observers or [])

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as e:
                log.debug("observer %s failed on %s: %s", type(ob).__name__, type(event).__name__, e)
