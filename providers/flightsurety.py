"""
providers/flightsurety.py

FlightSurety contract façade:
- Read wrappers (view calls)
- Write wrappers (transactions, waited on until mined)
- Ether/wei conversion at the boundary

Every operation runs on the context worker pool and returns a Future.
Pass callback=fn to get fn(error, value) on the context event loop instead.
Errors from the node or contract are delivered as raised, never wrapped
or retried. The only error this module raises itself is TransactionFailed,
for a transaction that was mined with status 0.
"""

import logging
from concurrent.futures import Future
from typing import Any, Dict, Optional

from web3 import Web3

from config import ORACLE_GAS_LIMIT, RECEIPT_TIMEOUT_SECONDS, TX_GAS_LIMIT
from providers.context import Callback, ClientContext

logger = logging.getLogger(__name__)


class TransactionFailed(Exception):
    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} was reverted")
        self.tx_hash = tx_hash


def to_wei(amount_ether) -> int:
    """Form values arrive as strings; Web3.to_wei handles str, int and Decimal."""
    if isinstance(amount_ether, str):
        amount_ether = amount_ether.strip()
    return Web3.to_wei(amount_ether, "ether")


def from_wei(amount_wei) -> str:
    return str(Web3.from_wei(int(amount_wei), "ether"))


class FlightSuretyClient:
    def __init__(self, context: ClientContext):
        self.context = context

    @property
    def app(self):
        return self.context.app_contract

    @property
    def data(self):
        return self.context.data_contract

    # =====================================================================
    # SECTION: LOW LEVEL HELPERS
    # =====================================================================

    def _call(self, fn, tx: Optional[Dict[str, Any]] = None) -> Any:
        if tx:
            return fn.call(tx)
        return fn.call()

    def _transact(self, fn, tx: Dict[str, Any]) -> str:
        tx = dict(tx)
        tx.setdefault("gas", TX_GAS_LIMIT)
        tx_hash = fn.transact(tx)
        receipt = self.context.web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=RECEIPT_TIMEOUT_SECONDS
        )
        hash_hex = hex_hash(tx_hash)
        logger.debug(f"[contract] tx={hash_hex} from={tx.get('from')} status={receipt['status']}")
        if receipt["status"] == 0:
            raise TransactionFailed(hash_hex)
        return hash_hex

    def _run(self, fn, callback: Optional[Callback]) -> Future:
        return self.context.dispatch(fn, callback)

    # =====================================================================
    # SECTION: OPERATIONAL STATUS
    # =====================================================================

    def is_operational(self, callback: Optional[Callback] = None) -> Future:
        return self._run(
            lambda: self._call(self.app.functions.isOperational(), {"from": self.context.owner}),
            callback,
        )

    def data_is_operational(self, callback: Optional[Callback] = None) -> Future:
        return self._run(lambda: self._call(self.data.functions.isOperational()), callback)

    def set_operating_status(self, mode: bool, from_address: str, callback: Optional[Callback] = None) -> Future:
        return self._run(
            lambda: self._transact(self.data.functions.setOperatingStatus(bool(mode)), {"from": from_address}),
            callback,
        )

    def authorize_caller(self, caller: str, from_address: Optional[str] = None,
                         callback: Optional[Callback] = None) -> Future:
        sender = from_address or self.context.owner
        return self._run(
            lambda: self._transact(self.data.functions.authorizeCaller(caller), {"from": sender}),
            callback,
        )

    # =====================================================================
    # SECTION: AIRLINES
    # =====================================================================

    def register_airline(self, from_address: str, new_address: str, callback: Optional[Callback] = None) -> Future:
        """The contract decides funding, membership and consensus; a revert surfaces as the error."""
        return self._run(
            lambda: self._transact(self.app.functions.registerAirline(new_address), {"from": from_address}),
            callback,
        )

    def get_existing_airlines(self, callback: Optional[Callback] = None) -> Future:
        return self._run(
            lambda: list(self._call(self.app.functions.getExistingAirlines(), {"from": self.context.owner})),
            callback,
        )

    def is_registered(self, airline: str, callback: Optional[Callback] = None) -> Future:
        return self._run(lambda: self._call(self.data.functions.isRegistered(airline)), callback)

    def get_airline_funds(self, airline: str, callback: Optional[Callback] = None) -> Future:
        """Funding in wei."""
        return self._run(
            lambda: self._call(self.app.functions.getAirlineFunds(airline), {"from": self.context.owner}),
            callback,
        )

    def send_funds(self, airline: str, amount_ether, callback: Optional[Callback] = None) -> Future:
        def _send():
            return self._transact(self.app.functions.fund(), {"from": airline, "value": to_wei(amount_ether)})
        return self._run(_send, callback)

    # =====================================================================
    # SECTION: PASSENGERS
    # =====================================================================

    def purchase_insurance(
        self,
        airline: str,
        flight: str,
        passenger: str,
        amount_ether,
        timestamp: int,
        callback: Optional[Callback] = None,
    ) -> Future:
        def _buy():
            fn = self.app.functions.buy(airline, flight, int(timestamp))
            return self._transact(fn, {"from": passenger, "value": to_wei(amount_ether)})
        return self._run(_buy, callback)

    def get_balance(self, passenger: str, callback: Optional[Callback] = None) -> Future:
        """Insurance credit in wei."""
        return self._run(
            lambda: self._call(self.app.functions.getPassengerBalance(passenger), {"from": passenger}),
            callback,
        )

    def withdraw_funds(self, passenger: str, amount_ether, callback: Optional[Callback] = None) -> Future:
        def _withdraw():
            return self._transact(self.app.functions.withdraw(to_wei(amount_ether)), {"from": passenger})
        return self._run(_withdraw, callback)

    # =====================================================================
    # SECTION: FLIGHT STATUS
    # =====================================================================

    def fetch_flight_status(self, airline: str, flight: str, timestamp: int,
                            callback: Optional[Callback] = None) -> Future:
        """
        Emits an OracleRequest on-chain. The value delivered here only echoes
        the request; the status itself comes later as a FlightStatusInfo event.
        """
        def _fetch():
            payload = {"airline": airline, "flight": flight, "timestamp": int(timestamp)}
            fn = self.app.functions.fetchFlightStatus(airline, flight, int(timestamp))
            self._transact(fn, {"from": self.context.owner})
            return payload
        return self._run(_fetch, callback)

    # =====================================================================
    # SECTION: ORACLES
    # =====================================================================

    def registration_fee(self, callback: Optional[Callback] = None) -> Future:
        return self._run(lambda: self._call(self.app.functions.REGISTRATION_FEE()), callback)

    def register_oracle(self, account: str, fee: int, callback: Optional[Callback] = None) -> Future:
        tx = {"from": account, "value": int(fee), "gas": ORACLE_GAS_LIMIT}
        return self._run(lambda: self._transact(self.app.functions.registerOracle(), tx), callback)

    def get_my_indexes(self, account: str, callback: Optional[Callback] = None) -> Future:
        return self._run(
            lambda: [int(i) for i in self._call(self.app.functions.getMyIndexes(), {"from": account})],
            callback,
        )


def hex_hash(tx_hash) -> str:
    if isinstance(tx_hash, str):
        return tx_hash
    value = tx_hash.hex()
    return value if value.startswith("0x") else "0x" + value


def event_args(event) -> Dict[str, Any]:
    """Plain dict of an event log's decoded args."""
    args = event["args"] if "args" in event else {}
    return dict(args)
