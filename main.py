# =====================================================================
# SECTION START: IMPORTS
# =====================================================================

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import (
    DAPP_CONTROLLER_ENABLED,
    FLIGHTSURETY_NETWORK,
    LOG_LEVEL,
    ORACLE_BOOTSTRAP_ENABLED,
)
from db import engine, Base
import models  # noqa: F401
from providers.factory import create_client_context
from routers.admin import router as admin_router
from routers.dapp import router as dapp_router
from services.dapp_controller import DappController
from services.oracle_service import OracleBootstrapper

# =====================================================================
# SECTION END: IMPORTS
# =====================================================================


# =====================================================================
# SECTION START: LOGGING
# =====================================================================

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("flightsurety")

# =====================================================================
# SECTION END: LOGGING
# =====================================================================


# =====================================================================
# SECTION START: FastAPI APP AND CORS
# =====================================================================

app = FastAPI()
app.state.context = None
app.state.controller = None
app.state.bootstrapper = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router)
app.include_router(dapp_router)

# =====================================================================
# SECTION END: FastAPI APP AND CORS
# =====================================================================


# =====================================================================
# SECTION START: STARTUP AND SHUTDOWN
# =====================================================================

@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)

    if not (ORACLE_BOOTSTRAP_ENABLED or DAPP_CONTROLLER_ENABLED):
        logger.info("[startup] node features disabled, serving API only")
        return

    try:
        context = create_client_context(FLIGHTSURETY_NETWORK)
    except Exception as e:
        # The static API keeps serving; /dapp routes answer 503
        logger.error(f"[startup] could not connect to network={FLIGHTSURETY_NETWORK}: {e}")
        return
    app.state.context = context

    if ORACLE_BOOTSTRAP_ENABLED:
        bootstrapper = OracleBootstrapper(context)
        bootstrapper.run()
        app.state.bootstrapper = bootstrapper

    if DAPP_CONTROLLER_ENABLED:
        controller = DappController(context)
        controller.load()
        controller.subscribe()
        app.state.controller = controller


@app.on_event("shutdown")
def on_shutdown():
    if app.state.controller is not None:
        app.state.controller.stop()
        app.state.controller = None
    if app.state.bootstrapper is not None:
        app.state.bootstrapper.stop()
        app.state.bootstrapper = None
    if app.state.context is not None:
        app.state.context.close()
        app.state.context = None

# =====================================================================
# SECTION END: STARTUP AND SHUTDOWN
# =====================================================================
