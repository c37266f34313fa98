# shiprates/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shiprates.core.config import get_settings
from shiprates.core.logging_config import configure_logging
from shiprates.core.security import require_auth
from shiprates.routes import cache, config, health, rates, webhooks
from shiprates.services.setup import setup_services

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_services(app.state, settings)

    logger.info(f"Ship rates service starting (environment: {settings.ENVIRONMENT})")
    logger.info(f"PreProduct API: {'configured' if settings.PREPRODUCT_API_TOKEN else 'missing'}")
    try:
        yield
    finally:
        logger.info("Shutting down gracefully...")
        await app.state.status_cache.close()


app = FastAPI(
    title="Ship Rates",
    description="Split ready-to-ship / pre-order shipping rates for Shopify checkout",
    lifespan=lifespan,
)


# Add middleware to handle HTTPS behind proxy
@app.middleware("http")
async def proxy_headers_middleware(request: Request, call_next):
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto == "https":
        request.scope["scheme"] = "https"
    return await call_next(request)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    settings = get_settings()
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.DEBUG else "Something went wrong",
        },
    )


# Shopify-facing endpoints need to be accessible without auth
app.include_router(rates.router)
app.include_router(webhooks.router)
app.include_router(health.router)

app.include_router(config.router, dependencies=[require_auth()])
app.include_router(cache.router, dependencies=[require_auth()])
