"""
services/oracle_service.py

Oracle network bootstrap for local development:
  1. Authorize the app contract as a caller of the data contract (once, no retry)
  2. Read REGISTRATION_FEE and register accounts 1..ORACLES_COUNT-1 as oracles
  3. Record the indexes the contract assigns each oracle
  4. Watch OracleRequest from block 0 and log every request

Registrations are issued back to back without waiting on each other, so they
complete in any order and there is no aggregate success signal. A failure is
logged for that account only.

NOTE: nothing here submits oracle responses. Flight status resolution is
entirely up to the contract and whatever answers its OracleRequest events.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from config import ORACLES_COUNT
from db import SessionLocal
from models import OracleRegistration, OracleRequestLog
from providers.context import ClientContext
from providers.events import EventWatcher
from providers.flightsurety import FlightSuretyClient, event_args, hex_hash

logger = logging.getLogger(__name__)


# =====================================================================
# SECTION: PERSISTENCE
# =====================================================================

def save_registration(address: str, indexes: List[int]):
    db = SessionLocal()
    try:
        row = db.query(OracleRegistration).filter(OracleRegistration.address == address).first()
        if row is None:
            row = OracleRegistration(address=address)
            db.add(row)
        row.indexes = ",".join(str(i) for i in indexes)
        row.registered_at = datetime.utcnow()
        db.commit()
    except Exception as e:
        logger.error(f"[oracle] DB write failed address={address}: {e}")
        db.rollback()
    finally:
        db.close()


def save_request(args: Dict, block_number: Optional[int], tx_hash: Optional[str]):
    db = SessionLocal()
    try:
        db.add(
            OracleRequestLog(
                oracle_index=int(args.get("index", 0)),
                airline=str(args.get("airline", "")),
                flight=str(args.get("flight", "")),
                timestamp=int(args.get("timestamp", 0)),
                block_number=block_number,
                tx_hash=tx_hash,
            )
        )
        db.commit()
    except Exception as e:
        logger.error(f"[oracle] DB write failed for request {args}: {e}")
        db.rollback()
    finally:
        db.close()


def parse_indexes(raw: str) -> List[int]:
    return [int(i) for i in raw.split(",") if i.strip()]


# =====================================================================
# SECTION: BOOTSTRAPPER
# =====================================================================

class OracleBootstrapper:
    def __init__(
        self,
        context: ClientContext,
        client: Optional[FlightSuretyClient] = None,
        oracles_count: int = ORACLES_COUNT,
        persist: bool = True,
    ):
        self.context = context
        self.client = client or FlightSuretyClient(context)
        self.oracles_count = oracles_count
        self.persist = persist

        # oracle account -> indexes assigned by the contract
        self.oracles: Dict[str, List[int]] = {}
        self.failures: Dict[str, str] = {}
        self.watcher: Optional[EventWatcher] = None

    def oracle_accounts(self) -> List[str]:
        """Accounts 1..oracles_count-1; account 0 is the deployer."""
        return self.context.accounts[1:self.oracles_count]

    def run(self, watch: bool = True):
        logger.info(f"[oracle] bootstrap starting accounts={len(self.context.accounts)}")
        self.authorize_app_contract()
        self.register_oracles()
        if watch:
            self.watch_requests()

    def authorize_app_contract(self):
        app_address = self.context.app_contract.address

        def _on_authorized(error, _result):
            if error is not None:
                logger.error(f"[oracle] Error in authorizing app contract {app_address}: {error}")
                return
            logger.info(f"[oracle] app contract {app_address} authorized on data contract")

        self.client.authorize_caller(app_address, from_address=self.context.owner, callback=_on_authorized)

    def register_oracles(self):
        def _on_fee(error, fee):
            if error is not None:
                logger.error(f"[oracle] could not read REGISTRATION_FEE: {error}")
                return
            logger.info(f"[oracle] registration fee={fee} oracles={len(self.oracle_accounts())}")
            for account in self.oracle_accounts():
                self.client.register_oracle(account, fee, callback=self._registered_callback(account))

        self.client.registration_fee(callback=_on_fee)

    def _registered_callback(self, account: str):
        def _on_registered(error, _result):
            if error is not None:
                self.failures[account] = str(error)
                logger.error(f"[oracle] Error while registering oracle {account}: {error}")
                return
            self.client.get_my_indexes(account, callback=self._indexes_callback(account))
        return _on_registered

    def _indexes_callback(self, account: str):
        def _on_indexes(error, indexes):
            if error is not None:
                self.failures[account] = str(error)
                logger.error(f"[oracle] Error reading indexes for {account}: {error}")
                return
            self.oracles[account] = list(indexes)
            logger.info(f"[oracle] Oracle registered: {account} indexes={indexes}")
            if self.persist:
                save_registration(account, list(indexes))
        return _on_indexes

    # =====================================================================
    # SECTION: ORACLE REQUESTS
    # =====================================================================

    def watch_requests(self, from_block: int = 0) -> EventWatcher:
        if self.watcher is None:
            self.watcher = EventWatcher(self.context, "OracleRequest", self.on_oracle_request, from_block).start()
        return self.watcher

    def on_oracle_request(self, error, event):
        if error is not None:
            logger.error(f"[oracle] OracleRequest error: {error}")
            return

        args = event_args(event)
        block_number = event.get("blockNumber")
        tx_hash = event.get("transactionHash")
        if tx_hash is not None:
            tx_hash = hex_hash(tx_hash)
        logger.info(
            f"[oracle] OracleRequest index={args.get('index')} airline={args.get('airline')} "
            f"flight={args.get('flight')} timestamp={args.get('timestamp')} block={block_number}"
        )
        if self.persist:
            save_request(args, block_number, tx_hash)

    def stop(self):
        if self.watcher is not None:
            self.watcher.stop(timeout=5)
            self.watcher = None
