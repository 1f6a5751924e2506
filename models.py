# =======================================
# SECTION: IMPORTS AND BASE
# =======================================

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
)

from db import Base


# =======================================
# SECTION: ORACLE REGISTRY
# =======================================

class OracleRegistration(Base):
    __tablename__ = "oracle_registrations"

    id = Column(Integer, primary_key=True, index=True)
    address = Column(String(42), unique=True, index=True, nullable=False)

    # Comma separated indexes assigned by the contract, e.g. "3,7,1"
    indexes = Column(String(32), nullable=False)

    registered_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# =======================================
# SECTION: ORACLE REQUEST LOG
# =======================================

class OracleRequestLog(Base):
    __tablename__ = "oracle_requests"

    id = Column(Integer, primary_key=True, index=True)

    oracle_index = Column(Integer, nullable=False)
    airline = Column(String(42), index=True, nullable=False)
    flight = Column(String(64), nullable=False)
    timestamp = Column(Integer, nullable=False)

    block_number = Column(Integer, nullable=True)
    tx_hash = Column(String(66), nullable=True)

    received_at = Column(DateTime, nullable=False, default=datetime.utcnow)
