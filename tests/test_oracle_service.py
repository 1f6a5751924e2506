"""
OracleBootstrapper against the fake chain.
"""

import logging

from db import SessionLocal
from fakes import FakeChain
from models import OracleRegistration, OracleRequestLog
from providers.context import ClientContext
from services.oracle_service import OracleBootstrapper, parse_indexes, save_registration

TIMEOUT = 5


def _bootstrap(context: ClientContext, **kwargs) -> OracleBootstrapper:
    bootstrapper = OracleBootstrapper(context, **kwargs)
    bootstrapper.run(watch=False)
    assert context.wait_idle(TIMEOUT)
    return bootstrapper


def test_authorizes_app_contract_once(context: ClientContext, chain: FakeChain):
    _bootstrap(context, persist=False)

    assert chain.authorized == [chain.app_address]
    assert chain.calls["authorizeCaller"] == 1


def test_registers_every_account_except_deployer(context: ClientContext, chain: FakeChain):
    bootstrapper = _bootstrap(context, persist=False)

    assert sorted(bootstrapper.oracles) == sorted(chain.accounts[1:30])
    assert chain.owner not in bootstrapper.oracles
    assert chain.calls["registerOracle"] == 29
    assert bootstrapper.oracles[chain.accounts[4]] == chain.oracles[chain.accounts[4]]


def test_oracle_count_limits_registrations(context: ClientContext, chain: FakeChain):
    bootstrapper = _bootstrap(context, oracles_count=5, persist=False)

    assert sorted(bootstrapper.oracles) == sorted(chain.accounts[1:5])


def test_failed_registration_does_not_stop_others(context: ClientContext, chain: FakeChain):
    chain.fail_oracle_for = {chain.accounts[3], chain.accounts[10]}

    bootstrapper = _bootstrap(context, persist=False)

    assert len(bootstrapper.oracles) == 27
    assert set(bootstrapper.failures) == {chain.accounts[3], chain.accounts[10]}
    assert "Oracle registration rejected" in bootstrapper.failures[chain.accounts[3]]


def test_authorization_failure_is_logged_not_raised(context: ClientContext, chain: FakeChain, caplog):
    chain.owner = chain.accounts[5]

    bootstrapper = _bootstrap(context, persist=False)

    assert chain.authorized == []
    assert len(bootstrapper.oracles) == 29
    assert "Error in authorizing app contract" in caplog.text


def test_registrations_are_persisted(context: ClientContext, chain: FakeChain, clean_db):
    _bootstrap(context, oracles_count=3)

    db = SessionLocal()
    try:
        rows = {r.address: parse_indexes(r.indexes) for r in db.query(OracleRegistration).all()}
    finally:
        db.close()

    assert rows == {a: chain.oracles[a] for a in chain.accounts[1:3]}


def test_save_registration_updates_existing_row(clean_db):
    save_registration("0xabc", [1, 2, 3])
    save_registration("0xabc", [4, 5, 6])

    db = SessionLocal()
    try:
        rows = db.query(OracleRegistration).all()
        assert [(r.address, r.indexes) for r in rows] == [("0xabc", "4,5,6")]
    finally:
        db.close()


def test_oracle_requests_are_logged_and_stored(context: ClientContext, chain: FakeChain, clean_db, caplog):
    caplog.set_level(logging.INFO)
    bootstrapper = OracleBootstrapper(context)
    event = chain.emit("OracleRequest", index=7, airline=chain.first_airline, flight="LH400", timestamp=1792368000)

    context.post(bootstrapper.on_oracle_request, None, event)
    assert context.wait_idle(TIMEOUT)

    assert "OracleRequest index=7" in caplog.text
    db = SessionLocal()
    try:
        row = db.query(OracleRequestLog).one()
        assert (row.oracle_index, row.airline, row.flight, row.timestamp) == (7, chain.first_airline, "LH400", 1792368000)
        assert row.block_number == event["blockNumber"]
        assert row.tx_hash == event["transactionHash"]
    finally:
        db.close()


def test_bootstrapper_never_submits_responses(context: ClientContext, chain: FakeChain):
    bootstrapper = _bootstrap(context, persist=False)
    chain.emit("OracleRequest", index=1, airline=chain.first_airline, flight="LH400", timestamp=1792368000)

    watcher = bootstrapper.watch_requests()
    watcher.stop(timeout=TIMEOUT)
    assert context.wait_idle(TIMEOUT)

    assert chain.calls["submitOracleResponse"] == 0
