import logging
import threading
from typing import Callable


logger = logging.getLogger(__name__)


class IntervalTicker:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "quiz-timer"):
        self.interval = interval
        self._callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            self._callback()

    def cancel(self) -> None:
        self._cancelled.set()
        # The callback itself may cancel us, e.g. after an auto-submit.
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=self.interval * 2)
        logger.debug("Ticker %s cancelled", self._thread.name)
