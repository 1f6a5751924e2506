"""schemas/oracles.py - Flight status codes and oracle registry response models."""

from datetime import datetime
from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel


class FlightStatusCode(IntEnum):
    UNKNOWN = 0
    ON_TIME = 10
    LATE_AIRLINE = 20
    LATE_WEATHER = 30
    LATE_TECHNICAL = 40
    LATE_OTHER = 50


def status_label(code: Optional[int]) -> str:
    """Human label for a status code, falls back to the raw number."""
    try:
        return FlightStatusCode(int(code)).name
    except (TypeError, ValueError):
        return str(code)


class OracleOut(BaseModel):
    address: str
    indexes: List[int]
    registered_at: Optional[datetime] = None


class OracleRequestOut(BaseModel):
    index: int
    airline: str
    flight: str
    timestamp: int
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None
    received_at: Optional[datetime] = None
