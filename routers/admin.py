"""routers/admin.py - API acknowledgement, health check and oracle registry routes."""

from typing import List

from fastapi import APIRouter, Query, Request

from config import API_MESSAGE
from db import SessionLocal
from models import OracleRegistration, OracleRequestLog
from schemas.oracles import OracleOut, OracleRequestOut
from services.oracle_service import parse_indexes

router = APIRouter()


# =====================================================================
# SECTION: HEALTH ROUTES
# =====================================================================

@router.get("/api")
def api_root():
    return {"message": API_MESSAGE}


@router.get("/health")
def health(request: Request):
    state = request.app.state
    return {
        "status": "ok",
        "node": getattr(state, "context", None) is not None,
        "oracles": len(getattr(getattr(state, "bootstrapper", None), "oracles", {}) or {}),
    }


# =====================================================================
# SECTION: ORACLE REGISTRY
# =====================================================================

@router.get("/oracles", response_model=List[OracleOut])
def list_oracles():
    db = SessionLocal()
    try:
        rows = db.query(OracleRegistration).order_by(OracleRegistration.id.asc()).all()
        return [
            OracleOut(address=r.address, indexes=parse_indexes(r.indexes), registered_at=r.registered_at)
            for r in rows
        ]
    finally:
        db.close()


@router.get("/oracle-requests", response_model=List[OracleRequestOut])
def list_oracle_requests(limit: int = Query(50, ge=1, le=500)):
    db = SessionLocal()
    try:
        rows = (
            db.query(OracleRequestLog)
            .order_by(OracleRequestLog.id.desc())
            .limit(limit)
            .all()
        )
        return [
            OracleRequestOut(
                index=r.oracle_index,
                airline=r.airline,
                flight=r.flight,
                timestamp=r.timestamp,
                block_number=r.block_number,
                tx_hash=r.tx_hash,
                received_at=r.received_at,
            )
            for r in rows
        ]
    finally:
        db.close()
