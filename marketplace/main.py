# marketplace/main.py
from fastapi import FastAPI
from marketplace.data.database import Base, engine
from marketplace.api import register_error_handlers
from marketplace.api.routers import carts, health, orders, payments, reviews, users
from marketplace.utils.logging import get_logger
import uvicorn

# all models have to be imported before create_all
import marketplace.data.models  # noqa: F401

logger = get_logger(__name__)


def create_app() -> FastAPI:
    logger.info(f"Initializing database, tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise

    app = FastAPI(
        title="Campus Marketplace Order Service",
        version="1.0.0",
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(orders.seller_router)
    app.include_router(orders.admin_router)
    app.include_router(payments.router)
    app.include_router(reviews.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
