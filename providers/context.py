"""
providers/context.py

ClientContext owns everything a FlightSurety client needs for its lifetime:
- the web3 connection (and the requests.Session behind it)
- both contract handles and the node account list
- the seed directories (airlines, passengers, flight catalog)
- a worker pool for node I/O
- a single-threaded event loop on which every callback runs

Open it once (providers/factory.py builds one from config), pass it to
whatever needs it, and close() it on shutdown.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from airlines import (
    AIRLINE_ACCOUNT_START,
    AIRLINE_NAMES,
    FLIGHT_CATALOG,
    PASSENGER_ACCOUNT_START,
    PASSENGER_NAMES,
    build_directory,
)
from config import NODE_WORKERS

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[BaseException], Any], None]


class ClientContext:
    def __init__(
        self,
        web3,
        app_contract,
        data_contract,
        accounts: List[str],
        airlines: Optional[Dict[str, str]] = None,
        passengers: Optional[Dict[str, str]] = None,
        flights: Optional[Dict[str, List[str]]] = None,
        session=None,
        workers: int = NODE_WORKERS,
    ):
        self.web3 = web3
        self.app_contract = app_contract
        self.data_contract = data_contract
        self.accounts = list(accounts)
        self.owner = self.accounts[0] if self.accounts else None

        if airlines is None:
            airlines = build_directory(self.accounts, AIRLINE_ACCOUNT_START, AIRLINE_NAMES)
        if passengers is None:
            passengers = build_directory(self.accounts, PASSENGER_ACCOUNT_START, PASSENGER_NAMES)
        self.airlines: Dict[str, str] = airlines
        self.passengers: Dict[str, str] = passengers
        self.flights: Dict[str, List[str]] = flights if flights is not None else dict(FLIGHT_CATALOG)

        self._session = session
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="node")
        self._loop = ThreadPoolExecutor(max_workers=1, thread_name_prefix="loop")

        self._idle = threading.Condition()
        self._pending = 0
        self._closed = False

    # =====================================================================
    # SECTION: DISPATCH
    # =====================================================================

    def dispatch(self, fn: Callable[[], Any], callback: Optional[Callback] = None) -> Future:
        """
        Run fn on the worker pool. When it finishes, callback(error, value)
        is invoked on the event loop. Returns the worker future.
        """
        self._begin()
        try:
            future = self._executor.submit(fn)
        except RuntimeError:
            self._end()
            raise
        future.add_done_callback(lambda f: self._loop.submit(self._deliver, f, callback))
        return future

    def post(self, fn: Callable[..., Any], *args) -> Future:
        """Schedule fn(*args) on the event loop."""
        self._begin()
        try:
            return self._loop.submit(self._run_posted, fn, args)
        except RuntimeError:
            self._end()
            raise

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no dispatched call or posted handler is outstanding."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def _begin(self):
        with self._idle:
            self._pending += 1

    def _end(self):
        with self._idle:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    def _deliver(self, future: Future, callback: Optional[Callback]):
        try:
            if callback is None:
                return
            error = future.exception()
            value = None if error is not None else future.result()
            callback(error, value)
        except Exception:
            logger.exception("[loop] callback raised")
        finally:
            self._end()

    def _run_posted(self, fn, args):
        try:
            return fn(*args)
        except Exception:
            logger.exception("[loop] handler raised")
        finally:
            self._end()

    # =====================================================================
    # SECTION: LIFETIME
    # =====================================================================

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self._loop.shutdown(wait=True)
        if self._session is not None:
            self._session.close()
        logger.info("[context] closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
