"""Storefront fulfillment FastAPI application.

Receives payment and carrier webhooks and exposes the operator actions
of the carrier sync pipeline. Commands are processed synchronously.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fulfillment.domain import fulfillment

# Initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml.
fulfillment.init()

_DOMAIN_PREFIXES = ("/orders", "/products", "/webhooks", "/shipping")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Fulfillment API",
    description="Payment webhooks and carrier sync for storefront orders",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the fulfillment domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with fulfillment.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from fulfillment.api.routes import (  # noqa: E402
    order_router,
    product_router,
    shipping_router,
    webhook_router,
)

app.include_router(order_router)
app.include_router(product_router)
app.include_router(webhook_router)
app.include_router(shipping_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": fulfillment.name})
