"""
Progress - Fire-and-forget scan notifications.

The scanner reports one ScanProgress per file event and a final all-empty
notification when a scan ends. Delivery is best effort: a failing listener
is logged and never interrupts extraction.
"""

import logging
import queue
from dataclasses import dataclass
from typing import Callable, List, Optional


logger = logging.getLogger(__name__)


STATUS_CACHED = "cached"
STATUS_SCANNING = "scanning"
STATUS_OCR = "ocr"


@dataclass(frozen=True)
class ScanProgress:
    path: Optional[str] = None
    status: Optional[str] = None
    diagnostic: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.path is None and self.status is None and self.diagnostic is None


ProgressCallback = Callable[[ScanProgress], None]


def notify(callback: Optional[ProgressCallback], event: ScanProgress) -> None:
    """Deliver a notification without letting the listener break the scan."""
    if callback is None:
        return
    try:
        callback(event)
    except Exception as e:
        logger.error(f"Progress listener error: {e}")


class ProgressChannel:
    """
    Unbounded progress queue usable as a ProgressCallback.

    Producers never block; consumers drain at their own pace.

    Usage:
        channel = ProgressChannel()
        machine = IndexStateMachine(config, progress=channel)
        machine.full_rescan()
        for event in channel.drain():
            print(event.status, event.path)
    """

    def __init__(self):
        self._queue: queue.SimpleQueue[ScanProgress] = queue.SimpleQueue()

    def __call__(self, event: ScanProgress) -> None:
        self._queue.put_nowait(event)

    def drain(self) -> List[ScanProgress]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
