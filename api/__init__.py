"""REST API module for the exchange service.

This module provides HTTP endpoints for:
- Creating and tracking orders against liquidity offers
- Publishing and searching offers
- Managing the supported blockchains catalogue
- Managing liquidity provider wallets
- Settlement webhooks that drive order and offer state
- Real-time notifications via WebSocket
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import AuthManager
from blockchains import BlockchainExistsError, BlockchainNotFoundError
from database import MemoryStore, init_db, close as db_close
from liquidity_wallets import LiquidityWalletExistsError, LiquidityWalletNotFoundError
from offers import OfferExistsError, OfferNotFoundError
from orders import InvalidStatusTransitionError, OrderExistsError, OrderNotFoundError

from .validation import RequestValidationFailure
from .websockets import ConnectionManager

logger = logging.getLogger(__name__)

async def validation_failure_handler(request: Request, exc: RequestValidationFailure):
    return JSONResponse(
        status_code=400,
        content=[error.model_dump() for error in exc.errors]
    )

async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={'msg': str(exc)})

async def already_exists_handler(request: Request, exc: Exception):
    # Duplicates answer 404 for compatibility with existing clients
    return JSONResponse(status_code=404, content={'msg': str(exc)})

async def invalid_transition_handler(request: Request, exc: InvalidStatusTransitionError):
    return JSONResponse(status_code=400, content={'msg': str(exc)})

def create_app(
    store: Any = None,
    notifier: Optional[Any] = None,
    settings: Optional[Dict[str, Any]] = None
) -> FastAPI:
    """Build the API application.

    Args:
        store: Record store to use; when omitted one is opened from settings
            on startup and closed on shutdown
        notifier: Object with a ``dispatch(event)`` method; defaults to the
            WebSocket connection manager
        settings: Settings mapping; defaults to ``config.settings_conf``

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        from config import settings_conf
        settings = settings_conf

    # Lifecycle management
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown events."""
        logger.info("Initializing API...")
        owned_store = None
        if app.state.store is None:
            if settings.get('store') == 'memory':
                logger.info("Using in-memory record store")
                owned_store = MemoryStore()
            else:
                owned_store = await init_db(settings=settings)
            app.state.store = owned_store

        yield

        logger.info("Shutting down API...")
        if isinstance(app.state.notifier, ConnectionManager):
            await app.state.notifier.drain()
        if owned_store is not None:
            await db_close(owned_store)
            app.state.store = None

    app = FastAPI(
        title="Delight Exchange API",
        description="REST API for cross-chain liquidity offers and orders",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.store = store
    app.state.notifier = notifier if notifier is not None else ConnectionManager()
    app.state.auth = AuthManager.from_settings(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get('cors_origins') or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Map domain errors to responses
    app.add_exception_handler(RequestValidationFailure, validation_failure_handler)
    for not_found_error in (OrderNotFoundError, OfferNotFoundError, BlockchainNotFoundError, LiquidityWalletNotFoundError):
        app.add_exception_handler(not_found_error, not_found_handler)
    for exists_error in (OrderExistsError, OfferExistsError, BlockchainExistsError, LiquidityWalletExistsError):
        app.add_exception_handler(exists_error, already_exists_handler)
    app.add_exception_handler(InvalidStatusTransitionError, invalid_transition_handler)

    # Import and include all routers
    from .orders import router as orders_router
    from .offers import router as offers_router
    from .blockchains import router as blockchains_router
    from .liquidity_wallets import router as liquidity_wallets_router
    from .webhooks import router as webhooks_router
    from .websockets import router as websocket_router

    app.include_router(orders_router)
    app.include_router(offers_router)
    app.include_router(blockchains_router)
    app.include_router(liquidity_wallets_router)
    app.include_router(webhooks_router)
    app.include_router(websocket_router)

    return app

# Application instance served by `python -m api`
app = create_app()

__all__ = ['create_app', 'app']
