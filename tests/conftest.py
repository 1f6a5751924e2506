import os
import tempfile

# Must be set before db.py is imported anywhere
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/flightsurety_test.db")

import pytest

from db import Base, SessionLocal, engine
import models  # noqa: F401
from models import OracleRegistration, OracleRequestLog
from providers.context import ClientContext
from providers.flightsurety import FlightSuretyClient
from fakes import FakeChain, contracts_for, make_accounts


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def clean_db():
    db = SessionLocal()
    try:
        db.query(OracleRegistration).delete()
        db.query(OracleRequestLog).delete()
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain(make_accounts(31))


@pytest.fixture
def context(chain: FakeChain):
    web3, app_contract, data_contract = contracts_for(chain)
    ctx = ClientContext(web3, app_contract, data_contract, accounts=chain.accounts)
    yield ctx
    ctx.close()


@pytest.fixture
def client(context: ClientContext) -> FlightSuretyClient:
    return FlightSuretyClient(context)
