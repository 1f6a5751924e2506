# airlines.py

# =====================================================================
# SECTION START: SEED DIRECTORIES
# Display names paired with node accounts when a client context is built.
# Account 0 is the contract owner; these slots follow it.
# =====================================================================

AIRLINE_ACCOUNT_START = 1
AIRLINE_NAMES = [
    "Lufthansa",
    "British Airways",
    "Air France",
    "KLM",
    "Swiss",
]

PASSENGER_ACCOUNT_START = 6
PASSENGER_NAMES = [
    "Passenger 1",
    "Passenger 2",
    "Passenger 3",
    "Passenger 4",
    "Passenger 5",
]

# =====================================================================
# SECTION END: SEED DIRECTORIES
# =====================================================================


# =====================================================================
# SECTION START: FLIGHT CATALOG
# Airline display name -> flight numbers offered in the DApp.
# Client-defined, not derived from contract state.
# =====================================================================

FLIGHT_CATALOG = {
    "Lufthansa": ["LH400", "LH401", "LH902"],
    "British Airways": ["BA117", "BA286", "BA2490"],
    "Air France": ["AF006", "AF1680", "AF334"],
    "KLM": ["KL641", "KL1001", "KL605"],
    "Swiss": ["LX16", "LX318", "LX1612"],
}

# =====================================================================
# SECTION END: FLIGHT CATALOG
# =====================================================================


def build_directory(accounts, start, names):
    """Pair seed names with accounts[start:], stopping at whichever runs out first."""
    return {address: name for address, name in zip(accounts[start:], names)}


def flights_for(airline_name):
    return list(FLIGHT_CATALOG.get(airline_name, []))
