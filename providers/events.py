"""
providers/events.py

Long-lived contract event stream.

EventWatcher polls a web3 event filter from a starting block in a daemon
thread and posts handler(error, event) onto the context event loop for every
log entry, the same way a node subscription would call back. Poll errors are
handed to the handler; the filter is then rebuilt and polling continues
without delivering an entry twice.
"""

import logging
import threading
from typing import Any, Callable, Optional, Tuple

from config import EVENT_POLL_INTERVAL_SECONDS
from providers.context import ClientContext

logger = logging.getLogger(__name__)

EventHandler = Callable[[Optional[BaseException], Any], None]


class EventWatcher:
    def __init__(
        self,
        context: ClientContext,
        event_name: str,
        handler: EventHandler,
        from_block: int = 0,
        poll_interval: float = EVENT_POLL_INTERVAL_SECONDS,
    ):
        self.context = context
        self.event_name = event_name
        self.handler = handler
        self.from_block = from_block
        self.poll_interval = poll_interval

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._filter = None
        self._cursor: Optional[Tuple[int, int]] = None

    def start(self) -> "EventWatcher":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(
            target=self._run,
            name=f"watch-{self.event_name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"[events] watching {self.event_name} from_block={self.from_block}")
        return self

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> int:
        """
        Fetch pending entries and post them. The first poll replays history
        from from_block. A poll that fails drops the filter; the next one
        builds a fresh filter from the last delivered block. Entries at or
        before the last delivered one are skipped. Returns the number of
        entries posted.
        """
        if self._filter is None:
            event = getattr(self.context.app_contract.events, self.event_name)
            start = self.from_block if self._cursor is None else self._cursor[0]
            self._filter = event.create_filter(from_block=start)
            fetch = self._filter.get_all_entries
        else:
            fetch = self._filter.get_new_entries

        try:
            entries = fetch()
        except Exception:
            self._filter = None
            raise

        posted = 0
        for entry in entries:
            position = log_position(entry)
            if self._cursor is not None and position <= self._cursor:
                continue
            self._cursor = position
            self.context.post(self.handler, None, entry)
            posted += 1
        return posted

    def _run(self):
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.warning(f"[events] {self.event_name} poll failed: {e}")
                self.context.post(self.handler, e, None)
            self._stop.wait(self.poll_interval)


def log_position(entry) -> Tuple[int, int]:
    return int(entry.get("blockNumber") or 0), int(entry.get("logIndex") or 0)
