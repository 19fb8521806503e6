"""
Reminder service entry point.

Architecture:
- One Python process, one asyncio event loop
- Two peers running concurrently:
  1. FastAPI (health endpoint for the process supervisor)
  2. ReminderScheduler (reminder dispatch every minute, token cleanup hourly)

FastAPI's lifespan starts and stops the scheduler, which gives us uvicorn's
signal handling for free.

Run with: python main.py [--no-scheduler] [--port PORT] [--once]
"""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")  # Local overrides (gitignored)
load_dotenv()  # Fallback to .env

import sentry_sdk
from fastapi import FastAPI

from meetme.config import check_required_env_vars, get_api_port, is_scheduler_disabled
from meetme.database import close_engine
from meetme.notifications import ReminderScheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("ENVIRONMENT", "development"),
        traces_sample_rate=0.0,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Starts the reminder scheduler inside the running loop and shuts it down
    (then disposes the database engine) on exit.
    """
    ok, messages = check_required_env_vars()
    for message in messages:
        logger.warning(message)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    if is_scheduler_disabled():
        logger.info("Reminder scheduler disabled (--no-scheduler or DISABLE_SCHEDULER=true)")
    else:
        app.state.scheduler = ReminderScheduler()
        app.state.scheduler.start()

    yield  # FastAPI runs here, scheduler runs alongside it

    logger.info("Shutting down peer services...")
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown()
    await close_engine()  # Close database connections


app = FastAPI(
    title="MeetMe Reminder Service",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Health check endpoint."""
    scheduler = getattr(app.state, "scheduler", None)
    return {
        "status": "healthy",
        "scheduler_running": scheduler.running if scheduler else False,
    }


async def run_once() -> dict | None:
    """Run a single dispatch tick and release the engine."""
    try:
        return await ReminderScheduler().run_reminder_tick()
    finally:
        await close_engine()


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="MeetMe Reminder Service")
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Disable the reminder scheduler (serve /health only)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 4000)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one reminder dispatch tick and exit",
    )
    args = parser.parse_args()

    if args.once:
        summary = asyncio.run(run_once())
        logger.info(f"Tick finished: {summary}")
        sys.exit(1 if summary is None or "error" in summary else 0)

    # Set env var so it persists across uvicorn reloads
    if args.no_scheduler:
        os.environ["DISABLE_SCHEDULER"] = "true"

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
