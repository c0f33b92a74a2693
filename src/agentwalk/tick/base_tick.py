# file: agentwalk/tick/base_tick.py

from abc import ABC, abstractmethod
from typing import Callable

TickCallback = Callable[[], None]


class Tick(ABC):
    """
    Base class for tick sources.

    A tick carries no payload: subscribers pull whatever state they need.
    start()/stop() must be idempotent.
    """

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def on_tick(self, callback: TickCallback) -> None:
        ...

    @abstractmethod
    def off_tick(self, callback: TickCallback) -> None:
        ...
