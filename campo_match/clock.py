"""
Match clock: advances MatchSession.current_time once per tick while Playing.

Threading:
  - One daemon thread, woken every tick_seconds by Event.wait()
  - stop() sets the event and joins the thread
"""

import logging
import threading
from typing import Optional

from .session import MatchSession

logger = logging.getLogger(__name__)


class MatchClock:
    """
    Drives the session timer.

    Example:
        clock = MatchClock(session, tick_seconds=1.0)
        clock.start()
        ...
        clock.stop()
    """

    def __init__(self, session: MatchSession, tick_seconds: float = 1.0):
        if tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be > 0, got {tick_seconds}")
        self.session = session
        self.tick_seconds = tick_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> bool:
        """
        Advance the clock by one second if the session is playing.

        Returns:
            True if the clock moved
        """
        return self.session.advance_timer(1)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("⚠️ Match clock already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="MatchClockThread",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"⏱️ Match clock started (tick={self.tick_seconds}s)")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("⏱️ Match clock stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self.tick_seconds):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"❌ Clock tick failed: {e}", exc_info=True)
