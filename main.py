from fastapi import FastAPI
from sqlmodel import SQLModel
import models.dealership  # Ensure these models are known by SQLModel for table creation
import models.setting
import models.shift
from db.session import engine
from contextlib import asynccontextmanager
from api.admin_maintenance_routes import router as admin_maintenance_router
from api.shift_routes import router as shift_router
from services.auto_close import run_auto_close_once
from services.scheduling import (
    ScheduledJobRunner,
    SchedulingContract,
    build_scheduler,
    scheduler_enabled,
)
import logging
import os
from dotenv import load_dotenv

# This file is the control center of the whole application

# Load environment variables from .env file, if it exists
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("APP_LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# When We Start, Create the DB Tables and (optionally) the auto-close scheduler
@asynccontextmanager
async def lifespan(app: FastAPI):

    SQLModel.metadata.create_all(engine)

    scheduler = None
    if scheduler_enabled():
        scheduler = build_scheduler(app.state.auto_close_runner)
        scheduler.start()
        logger.info("Auto-close scheduler started")
    else:
        logger.info("Auto-close scheduler disabled; use the maintenance endpoint or cron script")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)


# Starts Fast API Up; Init
app = FastAPI(lifespan=lifespan)

# One runner per process so HTTP triggers and the timer share the same lock
app.state.auto_close_runner = ScheduledJobRunner(
    SchedulingContract.auto_close_from_env(),
    lambda: run_auto_close_once(engine),
)

app.include_router(admin_maintenance_router, prefix="/admin/maintenance", tags=["Admin", "Maintenance"])
app.include_router(shift_router, prefix="/shifts", tags=["Shifts"])
