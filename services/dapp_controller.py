"""
services/dapp_controller.py

DApp page controller. Keeps a DappView (schemas/dapp.py) in sync with the
FlightSurety façade and contract events:
- Startup load of operating status, registered airlines, funding, balance
- Cascading selects (airline -> flights, passenger -> balance)
- Write actions followed by a re-fetch of the state they touch
- Append-only results panel

Public methods may be called from any thread. They post the real work onto
the context event loop, so the view is only ever mutated from that thread.
Each returns a Future that resolves once that action and the refreshes it
chains have rendered. Other work on the shared context does not hold it up.
"""

import logging
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import ACTION_TIMEOUT_SECONDS
from providers.context import Callback, ClientContext
from providers.events import EventWatcher
from providers.flightsurety import FlightSuretyClient, event_args, from_wei
from schemas.dapp import DappView, ResultRow, ResultSection, SelectOption
from schemas.oracles import status_label

logger = logging.getLogger(__name__)


# =====================================================================
# SECTION: ELEMENT IDS
# =====================================================================

REGISTERED_AIRLINE_SELECTS = ("registeredairline", "insuredairline", "fundingairline", "statusairline")
UNREGISTERED_AIRLINE_SELECT = "airlineaddress"
PASSENGER_SELECTS = ("insuredpassengers", "passengers")

# airline select -> dependent flight select
FLIGHT_SELECTS = {
    "insuredairline": "insflight-number",
    "statusairline": "flight-number",
}

FUNDS_FIELD = "funds"
BALANCE_FIELD = "balanceamount"


def to_timestamp(date_text: str) -> int:
    """Date picker value -> epoch seconds. Values without an offset are read as UTC."""
    text = str(date_text).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def result_row(label: str, error: Optional[BaseException], value: Any = None) -> ResultRow:
    if error is not None:
        return ResultRow(label=label, error=str(error))
    return ResultRow(label=label, value=str(value))


class ActionChain:
    """
    Completion of one controller action: the posted handler plus every
    node call it chains. Only touched on the event loop.
    """

    def __init__(self):
        self.future: Future = Future()
        self._steps = 1

    def step(self, callback: Callback) -> Callback:
        self._steps += 1

        def _step(error, value):
            try:
                callback(error, value)
            finally:
                self.finish()

        return _step

    def finish(self):
        self._steps -= 1
        if self._steps == 0 and not self.future.done():
            self.future.set_result(None)

    def fail(self, error: BaseException):
        if not self.future.done():
            self.future.set_exception(error)


def chained(chain: Optional[ActionChain], callback: Callback) -> Callback:
    return chain.step(callback) if chain is not None else callback


class DappController:
    def __init__(self, context: ClientContext, client: Optional[FlightSuretyClient] = None):
        self.context = context
        self.client = client or FlightSuretyClient(context)
        self.view = DappView()
        self.registered: List[str] = []
        self.watchers: List[EventWatcher] = []

    # =====================================================================
    # SECTION: PUBLIC API (any thread)
    # =====================================================================

    def load(self) -> Future:
        return self._start(self._load)

    def subscribe(self, from_block: int = 0) -> List[EventWatcher]:
        if not self.watchers:
            self.watchers = [
                EventWatcher(self.context, "FlightStatusInfo", self.on_flight_status_info, from_block).start(),
                EventWatcher(self.context, "OracleRequest", self.on_oracle_request, from_block).start(),
            ]
        return self.watchers

    def stop(self):
        for watcher in self.watchers:
            watcher.stop(timeout=5)
        self.watchers = []

    def select(self, element_id: str, value: str) -> Future:
        options = self.view.selects.get(element_id)
        if options is None:
            raise ValueError(f"Unknown select '{element_id}'")
        if value not in [o.value for o in options]:
            raise ValueError(f"'{value}' is not an option of '{element_id}'")
        return self._start(self._select, element_id, value)

    def register_airline(self, from_airline: Optional[str] = None, new_airline: Optional[str] = None) -> Future:
        return self._start(self._register_airline, from_airline, new_airline)

    def fund_airline(self, amount_ether: str) -> Future:
        return self._start(self._fund_airline, amount_ether)

    def purchase_insurance(self, amount_ether: str, date_text: str) -> Future:
        return self._start(self._purchase_insurance, amount_ether, date_text)

    def withdraw_funds(self, amount_ether: str) -> Future:
        return self._start(self._withdraw_funds, amount_ether)

    def fetch_flight_status(self, date_text: str) -> Future:
        return self._start(self._fetch_flight_status, date_text)

    def snapshot(self, timeout: Optional[float] = ACTION_TIMEOUT_SECONDS) -> DappView:
        """Deep copy of the view, taken on the event loop."""
        return self.context.post(lambda: self.view.model_copy(deep=True)).result(timeout)

    def _start(self, handler, *args) -> Future:
        chain = ActionChain()

        def _run():
            try:
                handler(*args, chain=chain)
            except Exception as e:
                chain.fail(e)
                raise
            finally:
                chain.finish()

        self.context.post(_run)
        return chain.future

    # =====================================================================
    # SECTION: RENDERING
    # =====================================================================

    def display(self, title: str, description: str, rows: List[ResultRow]):
        self.view.results.append(ResultSection(title=title, description=description, rows=rows))

    def selected(self, element_id: str) -> Optional[str]:
        return self.view.selected.get(element_id)

    def _populate(self, element_id: str, options: List[SelectOption]):
        """Replace a select's options, keeping the current selection if it survives."""
        self.view.selects[element_id] = options
        values = [o.value for o in options]
        current = self.view.selected.get(element_id)
        if current not in values:
            self.view.selected[element_id] = values[0] if values else None

    def _populate_registered_airlines(self, registered: List[str]):
        options = [SelectOption(value=a, text=self.context.airlines.get(a, a)) for a in registered]
        for element_id in REGISTERED_AIRLINE_SELECTS:
            self._populate(element_id, list(options))

    def _populate_unregistered_airlines(self, registered: List[str]):
        known = {a.lower() for a in registered}
        options = [
            SelectOption(value=address, text=name)
            for address, name in self.context.airlines.items()
            if address.lower() not in known
        ]
        self._populate(UNREGISTERED_AIRLINE_SELECT, options)

    def _populate_flights(self, airline_select: str):
        airline_name = self.context.airlines.get(self.selected(airline_select) or "")
        flights = self.context.flights.get(airline_name, [])
        self._populate(FLIGHT_SELECTS[airline_select], [SelectOption(value=f, text=f) for f in flights])

    def _populate_passengers(self):
        options = [SelectOption(value=a, text=name) for a, name in self.context.passengers.items()]
        for element_id in PASSENGER_SELECTS:
            self._populate(element_id, list(options))

    # =====================================================================
    # SECTION: READ REFRESHES (event loop)
    # =====================================================================

    def _load(self, chain: Optional[ActionChain] = None):
        self.client.is_operational(callback=chained(chain, self._on_operational))
        self._refresh_airlines(refresh_funding=True, chain=chain)
        self._populate_passengers()
        self._refresh_balance(chain=chain)

    def _on_operational(self, error, result):
        self.display(
            "Operational Status",
            "Check if contract is operational",
            [result_row("Operational Status", error, result)],
        )

    def _refresh_airlines(self, refresh_funding: bool = False, chain: Optional[ActionChain] = None):
        def _on_airlines(error, registered):
            self._on_airlines(error, registered, refresh_funding=refresh_funding, chain=chain)

        self.client.get_existing_airlines(callback=chained(chain, _on_airlines))

    def _on_airlines(self, error, registered, refresh_funding: bool = False, chain: Optional[ActionChain] = None):
        if error is not None:
            logger.warning(f"[dapp] getExistingAirlines failed: {error}")
            self.display("Airlines", "Fetch registered airlines", [result_row("Registered Airlines", error)])
            return

        self.registered = [str(a) for a in registered]
        self._populate_registered_airlines(self.registered)
        self._populate_unregistered_airlines(self.registered)
        for airline_select in FLIGHT_SELECTS:
            self._populate_flights(airline_select)

        if refresh_funding:
            self._refresh_funding(chain=chain)

    def _refresh_funding(self, chain: Optional[ActionChain] = None):
        airline = self.selected("fundingairline")
        if not airline:
            return

        def _on_funds(error, result):
            if error is not None:
                logger.warning(f"[dapp] getAirlineFunds failed airline={airline}: {error}")
                self.display("Airline Funding", "Get Funds", [result_row("Get Funds", error)])
                return
            self.view.fields[FUNDS_FIELD] = from_wei(result)

        self.client.get_airline_funds(airline, callback=chained(chain, _on_funds))

    def _refresh_balance(self, report_errors: bool = False, chain: Optional[ActionChain] = None):
        passenger = self.selected("insuredpassengers")
        if not passenger:
            return

        def _on_balance(error, result):
            if error is not None:
                logger.warning(f"[dapp] getBalance failed passenger={passenger}: {error}")
                if report_errors:
                    # a newly selected passenger has no cached balance to keep
                    self.display("Withdraw", "Withdraw funds", [result_row("Get Balance", error)])
                    self.view.fields[BALANCE_FIELD] = "0"
                return
            self.view.fields[BALANCE_FIELD] = from_wei(result)

        self.client.get_balance(passenger, callback=chained(chain, _on_balance))

    # =====================================================================
    # SECTION: ACTIONS (event loop)
    # =====================================================================

    def _select(self, element_id: str, value: str, chain: Optional[ActionChain] = None):
        self.view.selected[element_id] = value

        if element_id in FLIGHT_SELECTS:
            self._populate_flights(element_id)
        elif element_id == "insuredpassengers":
            self._refresh_balance(report_errors=True, chain=chain)
        elif element_id == "fundingairline":
            self._refresh_funding(chain=chain)

    def _register_airline(self, from_airline: Optional[str], new_airline: Optional[str],
                          chain: Optional[ActionChain] = None):
        sender = from_airline or self.selected("registeredairline")
        target = new_airline or self.selected(UNREGISTERED_AIRLINE_SELECT)
        if not sender or not target:
            self.display("Airlines", "Register Airline", [ResultRow(label="Register Airline", error="No airline selected")])
            return

        logger.info(f"[dapp] registerAirline from={sender} to={target}")

        def _on_registered(error, result):
            self.display("Airlines", "Register Airline", [result_row("Register Airline", error, result)])
            if error is None:
                self._refresh_airlines(chain=chain)

        self.client.register_airline(sender, target, callback=chained(chain, _on_registered))

    def _fund_airline(self, amount_ether: str, chain: Optional[ActionChain] = None):
        airline = self.selected("fundingairline")

        def _on_sent(error, result):
            self.display("Airline Funding", "Send Funds", [result_row("Send Funds", error, result)])
            if error is None:
                self._refresh_funding(chain=chain)

        self.client.send_funds(airline, amount_ether, callback=chained(chain, _on_sent))

    def _purchase_insurance(self, amount_ether: str, date_text: str, chain: Optional[ActionChain] = None):
        try:
            timestamp = to_timestamp(date_text)
        except ValueError as e:
            self.display("Insurance", "Purchase Insurance", [result_row("Purchase Insurance", e)])
            return

        airline = self.selected("insuredairline")
        flight = self.selected("insflight-number")
        passenger = self.selected("passengers")

        def _on_bought(error, result):
            self.display("Insurance", "Purchase Insurance", [result_row("Purchase Insurance", error, result)])
            if error is None:
                self._refresh_balance(chain=chain)

        self.client.purchase_insurance(
            airline, flight, passenger, amount_ether, timestamp, callback=chained(chain, _on_bought)
        )

    def _withdraw_funds(self, amount_ether: str, chain: Optional[ActionChain] = None):
        passenger = self.selected("insuredpassengers")

        def _on_withdrawn(error, result):
            self.display("Withdraw", "Withdraw Funds", [result_row("Withdraw Funds", error, result)])
            if error is None:
                self._refresh_balance(chain=chain)

        self.client.withdraw_funds(passenger, amount_ether, callback=chained(chain, _on_withdrawn))

    def _fetch_flight_status(self, date_text: str, chain: Optional[ActionChain] = None):
        try:
            timestamp = to_timestamp(date_text)
        except ValueError as e:
            self.display("Oracles", "Trigger oracles", [result_row("Fetch Flight Status", e)])
            return

        airline = self.selected("statusairline")
        flight = self.selected("flight-number")

        def _on_requested(error, result: Optional[Dict[str, Any]]):
            value = None
            if result is not None:
                value = f"{result['airline']} {result['flight']} {result['timestamp']}"
            self.display("Oracles", "Trigger oracles", [result_row("Fetch Flight Status", error, value)])

        self.client.fetch_flight_status(airline, flight, timestamp, callback=chained(chain, _on_requested))

    # =====================================================================
    # SECTION: CONTRACT EVENTS (event loop)
    # =====================================================================

    def on_flight_status_info(self, error, event):
        if error is not None:
            logger.warning(f"[dapp] FlightStatusInfo error: {error}")
            return

        args = event_args(event)
        value = f"{status_label(args.get('status'))} {args.get('flight')} {args.get('timestamp')}"
        self.display("Oracles", "Trigger oracles", [ResultRow(label="Fetch Flight Status", value=value)])
        self._refresh_balance()

    def on_oracle_request(self, error, event):
        if error is not None:
            logger.warning(f"[dapp] OracleRequest error: {error}")
            return

        args = event_args(event)
        value = f"index={args.get('index')} {args.get('flight')} {args.get('timestamp')}"
        self.display("Oracles", "Oracle request", [ResultRow(label="Oracle Request", value=value)])
