"""schemas/dapp.py - Pydantic models for network config, the DApp view model and /dapp payloads."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class NetworkConfig(BaseModel):
    url: str
    appAddress: str
    dataAddress: str


# =====================================================================
# SECTION: VIEW MODEL
# Render records a UI layer binds to. Element ids match the DApp page.
# =====================================================================

class SelectOption(BaseModel):
    value: str
    text: str


class ResultRow(BaseModel):
    label: str
    value: Optional[str] = None
    error: Optional[str] = None


class ResultSection(BaseModel):
    title: str
    description: str
    rows: List[ResultRow] = Field(default_factory=list)


class DappView(BaseModel):
    selects: Dict[str, List[SelectOption]] = Field(default_factory=dict)
    selected: Dict[str, Optional[str]] = Field(default_factory=dict)

    # Read-only text fields: "funds" (airline funding), "balanceamount" (passenger credit)
    fields: Dict[str, str] = Field(default_factory=dict)

    # Append-only results panel
    results: List[ResultSection] = Field(default_factory=list)


# =====================================================================
# SECTION: /dapp REQUEST PAYLOADS
# =====================================================================

class SelectPayload(BaseModel):
    element: str
    value: str


class RegisterAirlinePayload(BaseModel):
    # Default to the current "registeredairline" / "airlineaddress" selections
    fromAirline: Optional[str] = None
    newAirline: Optional[str] = None


class AmountPayload(BaseModel):
    amount: str


class PurchaseInsurancePayload(BaseModel):
    amount: str
    date: str  # date picker value, e.g. 2026-10-19 or 2026-10-19T14:30


class FlightStatusPayload(BaseModel):
    date: str
