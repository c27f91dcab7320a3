# storefront/api/__init__.py
from fastapi import FastAPI
from storefront.api.errors import register_error_handlers
from storefront.api.routers import admin, health, orders, users


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Order Service",
        version="1.0.0",
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(orders.router)
    app.include_router(admin.router)

    return app
