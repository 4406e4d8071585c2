# marketplace/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from marketplace.core.config import get_settings
from marketplace.core.errors import register_exception_handlers
from marketplace.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from marketplace.models import user as _user_models  # noqa: F401
from marketplace.models import product as _product_models  # noqa: F401
from marketplace.models import order as _order_models  # noqa: F401

# Routers
from marketplace.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
    """
    logger.info("Startup: connecting to database (%s)...", settings.ENVIRONMENT)
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(orders_router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "marketplace-api"}


@app.get(f"{settings.API_PREFIX}/health")
def health():
    """Health check under the API prefix (used by the SPA and load balancers)."""
    return {"status": "ok", "message": "Server is running"}
