"""Main FastAPI application for the Working Status API."""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging
import os

from app.db.config import new_session
from app.db.init import init_db
from app.db.retention import RetentionSweeper
from app.middleware.cors import add_cors_middleware
from app.routers import admin_router, auth_router, billing_router, tasks_router, users_router
from app.services.errors import TaskTrackerError
from app.services.notification_service import get_notification_service
from app.services.periodic import PeriodicJob
from app.services.reminder_scheduler import ReminderScheduler
from app.utils.logger import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "true").lower() == "true"
REMINDER_INTERVAL_SECONDS = float(os.environ.get("REMINDER_INTERVAL_SECONDS", "60"))
RETENTION_INTERVAL_SECONDS = float(os.environ.get("RETENTION_INTERVAL_SECONDS", "3600"))

# Create FastAPI application
app = FastAPI(
    title="Working Status API",
    description="Time tracking, task deadlines and reminder emails",
    version="1.0.0",
)

# Add CORS middleware
add_cors_middleware(app)


@app.exception_handler(TaskTrackerError)
async def task_tracker_error_handler(request: Request, exc: TaskTrackerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal Server Error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("%s %s database error: %s", request.method, request.url.path, str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


background_jobs = []


@app.on_event("startup")
async def startup_event():
    """Initialize database and start the background jobs."""
    try:
        init_db()
        logger.info("[SUCCESS] Database tables initialized successfully.")
    except SQLAlchemyError as e:
        logger.warning("[WARNING] Database initialization failed: %s", str(e))
        logger.warning("[WARNING] Server will continue but database operations may fail.")

    if not SCHEDULER_ENABLED:
        logger.info("Background jobs disabled (SCHEDULER_ENABLED=false)")
        return

    reminders = ReminderScheduler(new_session, get_notification_service())
    retention = RetentionSweeper(new_session)
    background_jobs.extend([
        PeriodicJob("task-reminders", REMINDER_INTERVAL_SECONDS, reminders.run_once),
        PeriodicJob("task-retention", RETENTION_INTERVAL_SECONDS, retention.run_once),
    ])
    for job in background_jobs:
        job.start()

    logger.info("[SUCCESS] Application startup complete.")


@app.on_event("shutdown")
async def shutdown_event():
    for job in background_jobs:
        await job.stop()
    background_jobs.clear()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "message": "Working Status API running",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(auth_router, prefix="/auth")  # /auth/login
app.include_router(users_router, prefix="/api")  # /api/user, /api/admin/users
app.include_router(tasks_router, prefix="/api")  # /api/tasks
app.include_router(admin_router, prefix="/api")  # /api/admin/...
app.include_router(billing_router, prefix="/api")  # /api/billing

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
