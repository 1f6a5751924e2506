"""
config.py

Single source of truth for:
- Environment variable reads
- Per-network contract configuration (dapp_config.json)
- Contract ABI loading
- Oracle and transaction defaults

Nothing here should contain route handlers or contract calls.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from schemas.dapp import NetworkConfig


BASE_DIR = Path(__file__).resolve().parent


# =====================================================================
# SECTION: ENV VARS
# =====================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Network selection: key into dapp_config.json
FLIGHTSURETY_NETWORK = os.getenv("FLIGHTSURETY_NETWORK", "localhost").strip()
DAPP_CONFIG_PATH = os.getenv("DAPP_CONFIG_PATH", str(BASE_DIR / "dapp_config.json"))

# Point at a truffle build/contracts directory to use real artifacts
CONTRACTS_BUILD_DIR = os.getenv("CONTRACTS_BUILD_DIR")
BUNDLED_ABI_DIR = BASE_DIR / "providers" / "abi"

APP_CONTRACT_NAME = "FlightSuretyApp"
DATA_CONTRACT_NAME = "FlightSuretyData"

# Oracles: account 0 is the deployer, accounts 1..ORACLES_COUNT-1 become oracles
ORACLES_COUNT = int(os.getenv("ORACLES_COUNT", "30"))
ORACLE_GAS_LIMIT = int(os.getenv("ORACLE_GAS_LIMIT", "4000000"))

TX_GAS_LIMIT = int(os.getenv("TX_GAS_LIMIT", "4000000"))
RECEIPT_TIMEOUT_SECONDS = float(os.getenv("RECEIPT_TIMEOUT_SECONDS", "120"))
EVENT_POLL_INTERVAL_SECONDS = float(os.getenv("EVENT_POLL_INTERVAL_SECONDS", "2"))

# How long a /dapp route waits for an action and its refreshes to settle
ACTION_TIMEOUT_SECONDS = float(os.getenv("ACTION_TIMEOUT_SECONDS", "60"))

NODE_WORKERS = int(os.getenv("NODE_WORKERS", "8"))

ORACLE_BOOTSTRAP_ENABLED = os.getenv("ORACLE_BOOTSTRAP_ENABLED", "true").lower() == "true"
DAPP_CONTROLLER_ENABLED = os.getenv("DAPP_CONTROLLER_ENABLED", "true").lower() == "true"

API_MESSAGE = "An API for use with your Dapp!"


# =====================================================================
# SECTION: NETWORK CONFIG
# =====================================================================

def load_network_configs(path: Optional[str] = None) -> Dict[str, NetworkConfig]:
    """Read the per-network config file, keyed by network name."""
    config_path = Path(path or DAPP_CONFIG_PATH)
    with config_path.open("r", encoding="utf-8") as fh:
        raw = json.load(fh)
    return {name: NetworkConfig(**record) for name, record in raw.items()}


def get_network_config(network: Optional[str] = None, path: Optional[str] = None) -> NetworkConfig:
    """
    Return the config record for one network.
    Raises KeyError naming the known networks if it is missing.
    """
    name = network or FLIGHTSURETY_NETWORK
    configs = load_network_configs(path)
    if name not in configs:
        raise KeyError(f"Unknown network '{name}', known: {sorted(configs)}")
    return configs[name]


# =====================================================================
# SECTION: ABI LOADING
# =====================================================================

def load_contract_abi(contract_name: str, build_dir: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Load a contract ABI from a truffle-style artifact ({"abi": [...]}).
    Uses CONTRACTS_BUILD_DIR when set, the bundled ABI files otherwise.
    """
    directory = Path(build_dir or CONTRACTS_BUILD_DIR or BUNDLED_ABI_DIR)
    artifact_path = directory / f"{contract_name}.json"
    with artifact_path.open("r", encoding="utf-8") as fh:
        artifact = json.load(fh)
    if isinstance(artifact, list):
        return artifact
    return artifact["abi"]
