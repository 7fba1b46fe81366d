"""
Bank Demo API Application Factory
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .customers import router as customers_router
from .branches import router as branches_router
from .statistics import router as statistics_router
from .deps import BankingSystem, get_banking_system
from .. import __version__
from ..config import BankDemoConfig, get_config
from ..exceptions import NotFoundError, StorageError, ValidationError
from ..routing import DatabaseRouter


logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def create_app(router: Optional[DatabaseRouter] = None,
               config: Optional[BankDemoConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    With an explicit router the app is bound to those databases instead of
    the configured ones; tests use this to run against temporary targets.
    """
    config = config or get_config()

    app = FastAPI(
        title="Bank Demo Data API",
        description="Filtered, paginated banking records across SEED, TESTING and PROD databases",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in config.cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if router is not None:
        system = BankingSystem(router=router, config=config)
        app.dependency_overrides[get_banking_system] = lambda: system

    # Error taxonomy; NotFoundError is matched before its ValidationError base
    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(ValidationError)
    async def handle_validation(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error(400, _describe_validation_errors(exc))

    @app.exception_handler(StorageError)
    async def handle_storage(request: Request, exc: StorageError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
        return _error(500, f"Database operation failed: {exc}")

    # Include routers
    app.include_router(accounts_router, prefix="/api/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/api/transactions", tags=["Transactions"])
    app.include_router(customers_router, prefix="/api/customers", tags=["Customers"])
    app.include_router(branches_router, prefix="/api/branches", tags=["Branches"])
    app.include_router(statistics_router, prefix="/api/statistics", tags=["Statistics"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "bank_demo_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Bank Demo Data API",
            "version": __version__,
            "description": "Banking records served from one of three databases per request",
            "databases": ["SEED", "TESTING", "PROD"],
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "accounts": "/api/accounts",
                "transactions": "/api/transactions",
                "customers": "/api/customers",
                "branches": "/api/branches",
                "statistics": "/api/statistics",
            }
        }

    return app
