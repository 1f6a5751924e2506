"""
FlightSuretyClient wiring: unit conversion, senders, callbacks and error delivery.
"""

import threading
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from config import ORACLE_GAS_LIMIT, TX_GAS_LIMIT
from fakes import make_accounts
from providers.context import ClientContext
from providers.flightsurety import FlightSuretyClient, TransactionFailed, from_wei, to_wei

TIMEOUT = 5
TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def accounts():
    return make_accounts(12)


@pytest.fixture
def web3():
    w3 = MagicMock()
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1}
    return w3


@pytest.fixture
def app_contract():
    contract = MagicMock()
    for name in ("registerAirline", "fund", "buy", "withdraw", "fetchFlightStatus", "registerOracle"):
        getattr(contract.functions, name).return_value.transact.return_value = TX_HASH
    return contract


@pytest.fixture
def mock_client(web3, app_contract, accounts):
    ctx = ClientContext(web3, app_contract, MagicMock(), accounts=accounts)
    yield FlightSuretyClient(ctx)
    ctx.close()


def _wait_callback(client: FlightSuretyClient, start):
    """Run start(callback) and return (error, value, thread_name) seen by the callback."""
    seen = {}
    done = threading.Event()

    def _callback(error, value):
        seen.update(error=error, value=value, thread=threading.current_thread().name)
        done.set()

    start(_callback)
    assert done.wait(TIMEOUT)
    return seen["error"], seen["value"], seen["thread"]


def test_to_wei_accepts_form_strings():
    assert to_wei("1") == 10 ** 18
    assert to_wei(" 0.5 ") == 5 * 10 ** 17
    assert to_wei(Decimal("2")) == 2 * 10 ** 18


def test_from_wei_renders_ether():
    assert from_wei(10 ** 18) == "1"
    assert from_wei(6 * 10 ** 17) == "0.6"
    assert from_wei(0) == "0"


def test_purchase_insurance_sends_wei_from_passenger(mock_client, app_contract, accounts):
    airline, passenger = accounts[1], accounts[6]

    result = mock_client.purchase_insurance(airline, "LH400", passenger, "0.25", 1760000000.0).result(TIMEOUT)

    assert result == TX_HASH
    app_contract.functions.buy.assert_called_once_with(airline, "LH400", 1760000000)
    app_contract.functions.buy.return_value.transact.assert_called_once_with(
        {"from": passenger, "value": 25 * 10 ** 16, "gas": TX_GAS_LIMIT}
    )


def test_send_funds_pays_from_airline(mock_client, app_contract, accounts):
    mock_client.send_funds(accounts[1], "10").result(TIMEOUT)

    app_contract.functions.fund.return_value.transact.assert_called_once_with(
        {"from": accounts[1], "value": 10 * 10 ** 18, "gas": TX_GAS_LIMIT}
    )


def test_withdraw_converts_amount(mock_client, app_contract, accounts):
    mock_client.withdraw_funds(accounts[6], "0.1").result(TIMEOUT)

    app_contract.functions.withdraw.assert_called_once_with(10 ** 17)
    app_contract.functions.withdraw.return_value.transact.assert_called_once_with(
        {"from": accounts[6], "gas": TX_GAS_LIMIT}
    )


def test_register_airline_sends_from_registering_airline(mock_client, app_contract, accounts):
    mock_client.register_airline(accounts[1], accounts[2]).result(TIMEOUT)

    app_contract.functions.registerAirline.assert_called_once_with(accounts[2])
    tx = app_contract.functions.registerAirline.return_value.transact.call_args[0][0]
    assert tx["from"] == accounts[1]


def test_fetch_flight_status_echoes_request_and_sends_from_owner(mock_client, app_contract, accounts):
    result = mock_client.fetch_flight_status(accounts[1], "LH400", 1760000000).result(TIMEOUT)

    assert result == {"airline": accounts[1], "flight": "LH400", "timestamp": 1760000000}
    tx = app_contract.functions.fetchFlightStatus.return_value.transact.call_args[0][0]
    assert tx["from"] == accounts[0]


def test_register_oracle_uses_fee_and_oracle_gas(mock_client, app_contract, accounts):
    mock_client.register_oracle(accounts[3], 10 ** 18).result(TIMEOUT)

    app_contract.functions.registerOracle.return_value.transact.assert_called_once_with(
        {"from": accounts[3], "value": 10 ** 18, "gas": ORACLE_GAS_LIMIT}
    )


def test_get_my_indexes_returns_ints(mock_client, app_contract, accounts):
    app_contract.functions.getMyIndexes.return_value.call.return_value = (4, 1, 9)

    assert mock_client.get_my_indexes(accounts[3]).result(TIMEOUT) == [4, 1, 9]
    app_contract.functions.getMyIndexes.return_value.call.assert_called_once_with({"from": accounts[3]})


def test_callback_runs_on_event_loop_with_value(mock_client, app_contract):
    app_contract.functions.isOperational.return_value.call.return_value = True

    error, value, thread = _wait_callback(mock_client, lambda cb: mock_client.is_operational(callback=cb))

    assert error is None
    assert value is True
    assert thread.startswith("loop")


def test_contract_error_reaches_callback_unmodified(mock_client, app_contract, accounts):
    revert = ContractLogicError("execution reverted: Caller has not provided funding")
    app_contract.functions.registerAirline.return_value.transact.side_effect = revert

    error, value, _ = _wait_callback(
        mock_client, lambda cb: mock_client.register_airline(accounts[1], accounts[2], callback=cb)
    )

    assert error is revert
    assert value is None


def test_node_error_is_not_retried(mock_client, app_contract, accounts):
    app_contract.functions.getPassengerBalance.return_value.call.side_effect = ConnectionError("node down")

    with pytest.raises(ConnectionError):
        mock_client.get_balance(accounts[6]).result(TIMEOUT)

    assert app_contract.functions.getPassengerBalance.return_value.call.call_count == 1


def test_reverted_receipt_raises_transaction_failed(mock_client, web3, accounts):
    web3.eth.wait_for_transaction_receipt.return_value = {"status": 0}

    with pytest.raises(TransactionFailed) as exc:
        mock_client.send_funds(accounts[1], "1").result(TIMEOUT)

    assert exc.value.tx_hash == TX_HASH


def test_wait_idle_covers_chained_callbacks(mock_client, app_contract, accounts):
    app_contract.functions.getExistingAirlines.return_value.call.return_value = [accounts[1]]
    seen = []

    def _after_register(error, _value):
        seen.append(("register", error))
        mock_client.get_existing_airlines(callback=lambda e, v: seen.append(("airlines", v)))

    mock_client.register_airline(accounts[1], accounts[2], callback=_after_register)

    assert mock_client.context.wait_idle(TIMEOUT)
    assert seen == [("register", None), ("airlines", [accounts[1]])]
