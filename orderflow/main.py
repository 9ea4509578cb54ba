import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Import models so every table is registered with Base
from . import models  # noqa: F401
from .database import Base, engine
from .routes.status_automation import router as status_router
from .services.order_lifecycle import OrderLifecycleScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    # Manual triggers only; the cron schedules run in the ARQ worker
    app.state.scheduler = OrderLifecycleScheduler()

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Orderflow Scheduler API", version="1.0.0", lifespan=lifespan)

app.include_router(status_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
