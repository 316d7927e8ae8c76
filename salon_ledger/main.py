"""
Main FastAPI application - salon ledger: journal, commissions, payroll and reports.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from salon_ledger.api.routers import accounting, commissions, payroll, reports
from salon_ledger.core.config import settings
from salon_ledger.core.logging_config import configure_logging
from salon_ledger.domain.exceptions import (
    ConflictError,
    InsufficientFundsError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from salon_ledger.infrastructure.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan - startup and shutdown events."""
    configure_logging(settings.log_level, settings.log_format)
    init_db()
    logger.info("Salon ledger started", extra={"database": settings.database_url.split("://")[0]})
    yield


app = FastAPI(
    title="Salon Ledger API",
    description="""
## Salon Ledger

- **Chart of accounts**: per-salon accounts, provisioned on first use
- **Journal**: balanced double-entry postings for sales, expenses, commissions and payroll
- **Commissions**: accrual on sale/appointment completion, wallet settlement
- **Payroll**: pro-rated base pay plus unpaid commissions
- **Reports**: expense and financial summaries, daily series, ledger export, balance sheet, P&L
    """,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounting.router)
app.include_router(commissions.router)
app.include_router(commissions.wallet_router)
app.include_router(payroll.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {
        "name": "Salon Ledger API",
        "version": "0.1.0",
        "currency": settings.currency,
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (InsufficientFundsError, 400),
    (ValidationError, 400),
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Map domain errors to HTTP status codes."""
    status_code = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    if isinstance(exc, InsufficientFundsError):
        content = {
            "detail": str(exc),
            "available": str(exc.available),
            "required": str(exc.required),
        }
    else:
        content = {"detail": str(exc)}
    return JSONResponse(status_code=status_code, content=content)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
