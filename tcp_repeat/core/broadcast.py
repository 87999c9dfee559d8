"""
Broadcast Channel - pushes full state snapshots to connected observers.

Every message is one JSON text frame ``{"event": name, "data": payload}``.
Delivery is best-effort: an observer whose send fails or stalls past
the send timeout is dropped.
"""

import asyncio
import json
from typing import Any, Iterable, List, Protocol, Set, Tuple

from tcp_repeat.core.logging_utils import get_module_logger


class Observer(Protocol):
    """The part of aiohttp's WebSocketResponse the channel relies on."""

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str) -> None: ...


Message = Tuple[str, Any]

# Seconds a single frame may take before the observer is dropped
SEND_TIMEOUT = 5.0


def encode(event: str, data: Any) -> str:
    return json.dumps({"event": event, "data": data})


class BroadcastChannel:
    """Set of connected observers plus fan-out of state messages."""

    def __init__(self, send_timeout: float = SEND_TIMEOUT):
        self.logger = get_module_logger("Broadcast")
        self._observers: Set[Observer] = set()
        self.send_timeout = send_timeout

    def __len__(self) -> int:
        return len(self._observers)

    def __contains__(self, observer: object) -> bool:
        return observer in self._observers

    async def connect(self, observer: Observer, onboarding: Iterable[Message]) -> bool:
        """Send the onboarding sequence, then start including ``observer`` in broadcasts.

        Returns False if the observer went away during onboarding.
        """
        try:
            for event, data in onboarding:
                await asyncio.wait_for(observer.send_str(encode(event, data)), timeout=self.send_timeout)
        except (ConnectionError, RuntimeError, asyncio.TimeoutError) as e:
            self.logger.warning("Observer dropped during onboarding: %s", e)
            return False

        self._observers.add(observer)
        self.logger.debug("A socket client connected (%d observers)", len(self._observers))
        return True

    def disconnect(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.discard(observer)
            self.logger.debug("A socket client disconnected (%d observers)", len(self._observers))

    async def broadcast(self, *messages: Message) -> int:
        """Send ``messages`` in order to every observer; returns observers reached."""
        if not self._observers:
            return 0

        frames = [encode(event, data) for event, data in messages]
        observers: List[Observer] = list(self._observers)
        results = await asyncio.gather(
            *(self._deliver(observer, frames) for observer in observers),
            return_exceptions=True,
        )

        reached = 0
        for observer, result in zip(observers, results):
            if isinstance(result, Exception):
                self.logger.warning("Dropping observer after failed send: %s", result)
                self.disconnect(observer)
            else:
                reached += 1
        return reached

    async def _deliver(self, observer: Observer, frames: List[str]) -> None:
        if observer.closed:
            raise ConnectionError("observer closed")
        for frame in frames:
            try:
                await asyncio.wait_for(observer.send_str(frame), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                raise ConnectionError(f"send timed out after {self.send_timeout:g}s") from None

    async def close_all(self) -> None:
        """Close every observer; used on server shutdown."""
        observers = list(self._observers)
        self._observers.clear()
        for observer in observers:
            close = getattr(observer, "close", None)
            if close is None:
                continue
            try:
                await close()
            except (ConnectionError, RuntimeError) as e:
                self.logger.debug("Observer close failed: %s", e)
