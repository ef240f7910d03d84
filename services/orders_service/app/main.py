"""FastAPI application for the Orders Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.orders_service.routers import (
    admin_coupons_router,
    admin_orders_router,
    coupons_router,
    orders_router,
    webhooks_router,
)


def create_app() -> FastAPI:
    """Create and configure the Orders Service FastAPI app."""
    app = FastAPI(
        title="Bulky Orders Service",
        version="0.1.0",
        description="Orders, split payments and coupons for bulk buyers.",
    )
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "orders"}

    # Buyer routes
    app.include_router(orders_router)
    app.include_router(coupons_router)

    # Admin routes
    app.include_router(admin_orders_router, prefix="/admin")
    app.include_router(admin_coupons_router, prefix="/admin")

    # Payment gateway callbacks
    app.include_router(webhooks_router)

    return app


app = create_app()
