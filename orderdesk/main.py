from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from orderdesk.api.routes_orders import router as orders_router
from orderdesk.api.routes_pricing import router as pricing_router
from orderdesk.api.routes_rates import router as rates_router
from orderdesk.core.config import get_settings
from orderdesk.core.errors import NotFoundError, PricingError, ReconciliationError, StaleCalculationError
from orderdesk.core.logging import configure_logging
from orderdesk.demo import seed_default_rates
from orderdesk.persistence.pg import init_db, session_scope

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    if settings.bootstrap_default_rates_on_startup:
        with session_scope() as session:
            result = seed_default_rates(session)
        logger.info(
            "default shipping rates ready: seeded_now=%s countries=%s",
            result.get("seeded_now"),
            result.get("countries"),
        )


@app.exception_handler(PricingError)
async def pricing_error_handler(_: Request, exc: PricingError):
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, StaleCalculationError):
        status_code = 409
    elif isinstance(exc, ReconciliationError):
        status_code = 500
    else:
        status_code = 400
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "error": exc.kind,
        },
    )


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(pricing_router)
app.include_router(rates_router)
app.include_router(orders_router)
