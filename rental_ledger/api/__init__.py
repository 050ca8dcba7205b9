"""
Rental Ledger API Application Factory
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from .accounts import router as accounts_router
from .parties import router as parties_router
from .ledger import router as ledger_router
from .sales import router as sales_router
from .expenses import router as expenses_router
from .reports import router as reports_router
from .errors import (
    generic_exception_handler, http_exception_handler,
    ledger_exception_handler, validation_exception_handler
)
from .. import __version__
from ..config import get_config
from ..errors import LedgerError
from ..logging_config import setup_logging
from ..system import LedgerSystem


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    if system is None:
        config = get_config()
        setup_logging(config.log_level, config.log_format, config.log_file)
        system = LedgerSystem(config)

    app = FastAPI(
        title="Rental Ledger API",
        description="Double-entry posting and reporting engine for the rental business",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.ledger_system = system

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Include routers
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(parties_router, prefix="/parties", tags=["Parties"])
    app.include_router(ledger_router, prefix="/ledger", tags=["Ledger"])
    app.include_router(sales_router, prefix="/sales", tags=["Sales"])
    app.include_router(expenses_router, prefix="/expenses", tags=["Expenses"])
    app.include_router(reports_router, prefix="/reports", tags=["Reports"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "rental_ledger_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Rental Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "accounts": "/accounts",
                "parties": "/parties",
                "ledger": "/ledger/postings",
                "sales": "/sales",
                "expenses": "/expenses",
                "reports": "/reports/trial-balance",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "rental_ledger.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
