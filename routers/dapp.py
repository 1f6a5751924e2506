"""routers/dapp.py - DApp page actions and view model, backed by DappController."""

from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout

from fastapi import APIRouter, HTTPException, Request

from config import ACTION_TIMEOUT_SECONDS
from schemas.dapp import (
    AmountPayload,
    DappView,
    FlightStatusPayload,
    PurchaseInsurancePayload,
    RegisterAirlinePayload,
    SelectPayload,
)
from services.dapp_controller import DappController

router = APIRouter(prefix="/dapp")


def _controller(request: Request) -> DappController:
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="DApp controller is not running")
    return controller


def _settled_view(controller: DappController, action: Future) -> DappView:
    """Wait for this action and the refreshes it triggers, then return the view."""
    try:
        action.result(timeout=ACTION_TIMEOUT_SECONDS)
    except FutureTimeout:
        raise HTTPException(status_code=504, detail="Timed out waiting for the node")
    return controller.snapshot()


@router.get("/view", response_model=DappView)
def get_view(request: Request):
    return _controller(request).snapshot()


@router.post("/select", response_model=DappView)
def select(payload: SelectPayload, request: Request):
    controller = _controller(request)
    try:
        action = controller.select(payload.element, payload.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _settled_view(controller, action)


@router.post("/register-airline", response_model=DappView)
def register_airline(payload: RegisterAirlinePayload, request: Request):
    controller = _controller(request)
    return _settled_view(controller, controller.register_airline(payload.fromAirline, payload.newAirline))


@router.post("/fund-airline", response_model=DappView)
def fund_airline(payload: AmountPayload, request: Request):
    controller = _controller(request)
    return _settled_view(controller, controller.fund_airline(payload.amount))


@router.post("/purchase-insurance", response_model=DappView)
def purchase_insurance(payload: PurchaseInsurancePayload, request: Request):
    controller = _controller(request)
    return _settled_view(controller, controller.purchase_insurance(payload.amount, payload.date))


@router.post("/withdraw-funds", response_model=DappView)
def withdraw_funds(payload: AmountPayload, request: Request):
    controller = _controller(request)
    return _settled_view(controller, controller.withdraw_funds(payload.amount))


@router.post("/fetch-flight-status", response_model=DappView)
def fetch_flight_status(payload: FlightStatusPayload, request: Request):
    controller = _controller(request)
    return _settled_view(controller, controller.fetch_flight_status(payload.date))
