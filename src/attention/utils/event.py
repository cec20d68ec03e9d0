import asyncio
import inspect
from typing import Callable, Optional
from attention.utils import setup_logger

logger = setup_logger(__name__)


class Event:
    """A small synchronous pub/sub hook.

    Listeners run in subscription order on the caller's control flow. A
    listener returning a coroutine is scheduled on ``loop`` instead.
    """

    def __init__(self, name: str = "", loop: Optional[asyncio.AbstractEventLoop] = None):
        self.name = name
        self._listeners: list[Callable] = []
        self.loop = loop

    def add_listener(self, listener: Callable) -> None:
        if not callable(listener):
            raise ValueError("Listener must be callable")
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def emit(self, *args, **kwargs) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(*args, **kwargs)

                if inspect.iscoroutine(result):
                    if not self.loop:
                        result.close()
                        raise RuntimeError("Async listener requires event loop")
                    self.loop.call_soon_threadsafe(
                        asyncio.ensure_future,
                        self._safe_task(result)
                    )

            except Exception:
                logger.exception(f"Error in listener for event '{self.name}'")

    async def _safe_task(self, coro):
        try:
            await coro
        except Exception:
            logger.exception(f"Unhandled exception in async listener for event '{self.name}'")
