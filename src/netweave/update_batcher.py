import asyncio
import logging

from dataclasses import dataclass, field
from typing import Callable


logger = logging.getLogger(__name__)


@dataclass
class UpdateBatcher:
    """Coalesces "model changed" notifications into a single flush.

    `notify()` marks the owner dirty and, when an event loop is running, schedules a
    flush after `delay_seconds` (each notification pushes the flush back). Without a
    running loop nothing is scheduled and the owner calls `flush()` itself.
    """

    on_flush: Callable[[], None]
    delay_seconds: float = field(default=0.0)
    pending: bool = field(default=False)
    _handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    def notify(self) -> None:
        self.pending = True
        self._cancel_scheduled()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._handle = loop.call_later(self.delay_seconds, self.flush)

    def flush(self) -> None:
        self._cancel_scheduled()
        if not self.pending:
            return
        self.pending = False
        logger.debug("Flushing batched model update")
        self.on_flush()

    def close(self) -> None:
        self._cancel_scheduled()
        self.pending = False

    def _cancel_scheduled(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
