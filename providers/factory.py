"""
providers/factory.py

Builds a ClientContext for a configured network.

The network is picked by FLIGHTSURETY_NETWORK (default "localhost") and
looked up in dapp_config.json. To point at another node without code changes:
  FLIGHTSURETY_NETWORK=sepolia  (with a "sepolia" record in the config file)

ABIs come from the bundled providers/abi files unless CONTRACTS_BUILD_DIR
points at a truffle build/contracts directory.
"""

import logging
from typing import Optional

import requests
from web3 import Web3

from config import (
    APP_CONTRACT_NAME,
    DATA_CONTRACT_NAME,
    get_network_config,
    load_contract_abi,
)
from providers.context import ClientContext

logger = logging.getLogger(__name__)


def create_web3(url: str, session: Optional[requests.Session] = None) -> Web3:
    """HTTP provider backed by a persistent requests.Session."""
    session = session or requests.Session()
    return Web3(Web3.HTTPProvider(url, session=session))


def create_client_context(
    network: Optional[str] = None,
    config_path: Optional[str] = None,
    build_dir: Optional[str] = None,
) -> ClientContext:
    """
    Canonical entry point for opening a FlightSurety connection.

    Reads the network record, connects, loads both contracts and the node
    account list. The returned context owns the session; close() releases it.
    """
    net = get_network_config(network, config_path)
    session = requests.Session()
    w3 = create_web3(net.url, session=session)

    app_contract = w3.eth.contract(
        address=Web3.to_checksum_address(net.appAddress),
        abi=load_contract_abi(APP_CONTRACT_NAME, build_dir),
    )
    data_contract = w3.eth.contract(
        address=Web3.to_checksum_address(net.dataAddress),
        abi=load_contract_abi(DATA_CONTRACT_NAME, build_dir),
    )

    try:
        accounts = list(w3.eth.accounts)
    except Exception:
        session.close()
        raise

    logger.info(
        f"[factory] connected url={net.url} app={app_contract.address} "
        f"data={data_contract.address} accounts={len(accounts)}"
    )
    return ClientContext(
        web3=w3,
        app_contract=app_contract,
        data_contract=data_contract,
        accounts=accounts,
        session=session,
    )
