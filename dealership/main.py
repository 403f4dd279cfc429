# dealership/main.py
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from .api.routes import router as api_router
from .db import Base, engine
from . import models  # noqa: F401 ensure models are imported so tables are known
from .scheduler import shutdown_scheduler, start_scheduler
from .utils import logger

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # migrations are not used; create missing tables on startup
    Base.metadata.create_all(bind=engine)
    scheduler_enabled = os.getenv("ENABLE_SCHEDULER", "0") == "1"
    if scheduler_enabled:
        start_scheduler()
    try:
        yield
    finally:
        if scheduler_enabled:
            shutdown_scheduler()


app = FastAPI(title="Dealership inventory", lifespan=lifespan)
app.include_router(api_router)
logger.info("Dealership app created")
