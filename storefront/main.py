"""
Storefront - Backend API
JSON API for the storefront: catalog, cart, checkout and accounts
"""
import time
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api import (
    auth, password, verification, stores, products, variants, categories,
    cart, orders, line_items, checkouts, users, search, reference,
)
from storefront.core.auth import authenticate_request
from storefront.core.config import settings
from storefront.core.database import get_db_connection_dict_with_retry
from storefront.core.errors import register_exception_handlers
from storefront.core.logging_config import configure_logging

configure_logging()

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    debug=settings.API_DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Every router goes through the API key gate; public endpoints opt out
# with @allow_anonymous
gate = [Depends(authenticate_request)]

app.include_router(auth.router, prefix="/api", tags=["Auth"], dependencies=gate)
app.include_router(password.router, prefix="/api/auth/password", tags=["Auth"], dependencies=gate)
app.include_router(verification.router, prefix="/api/auth/verification", tags=["Auth"], dependencies=gate)
app.include_router(stores.router, prefix="/api/stores", tags=["Stores"], dependencies=gate)
app.include_router(products.router, prefix="/api/products", tags=["Products"], dependencies=gate)
app.include_router(variants.router, prefix="/api/variants", tags=["Variants"], dependencies=gate)
app.include_router(categories.router, prefix="/api/categories", tags=["Categories"], dependencies=gate)
app.include_router(cart.router, prefix="/api/cart", tags=["Cart"], dependencies=gate)
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"], dependencies=gate)
app.include_router(line_items.router, prefix="/api/orders/{order_id}/line_items", tags=["Orders"], dependencies=gate)
app.include_router(checkouts.router, prefix="/api/checkouts", tags=["Checkout"], dependencies=gate)
app.include_router(users.router, prefix="/api", tags=["Users"], dependencies=gate)
app.include_router(search.router, prefix="/api/search", tags=["Search"], dependencies=gate)
app.include_router(reference.router, prefix="/api", tags=["Reference"], dependencies=gate)


@app.get("/up")
async def up():
    """Liveness check"""
    return {"status": "ok"}


@app.get("/health")
async def health():
    """Health check endpoint for monitoring - tests database connectivity"""
    start_time = time.time()

    db_latency_ms = None
    db_error = None

    try:
        conn = get_db_connection_dict_with_retry(max_retries=1, retry_delay=0)
        db_latency_ms = round((time.time() - start_time) * 1000, 2)
        conn.close()
        db_status = "connected"
    except Exception as e:
        db_status = "disconnected"
        db_error = str(e)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "storefront-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error,
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_DEBUG)
