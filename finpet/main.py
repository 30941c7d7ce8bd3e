# finpet/main.py
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from finpet.api.v1.endpoints import pet_interactions
from finpet.core.settings import settings
from finpet.core.logging_config import setup_logging
from finpet.core.storage import build_store
from finpet.services.notifications import LoggingNotificationSink, NotificationFeed
from finpet.services.pet_engine import PetEngine
import asyncio
import structlog

setup_logging(log_level_str=settings.LOG_LEVEL, env_type=settings.ENV_TYPE)
log = structlog.get_logger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# --- Background Task for Inactivity Decay ---
DECAY_CHECK_INTERVAL_SECONDS = settings.DECAY_CHECK_INTERVAL_SECONDS
_keep_checking = True


async def periodic_decay_check(engine: PetEngine, interval_seconds: float = DECAY_CHECK_INTERVAL_SECONDS):
    log.info("Background decay task started.", interval_seconds=interval_seconds)
    while _keep_checking:
        try:
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            log.info("Background decay task cancelled.")
            break  # Exit the loop if the task is cancelled

        try:
            # The engine lock and store I/O block, so keep them off the event loop
            periods = await run_in_threadpool(engine.apply_decay)
            log.debug("Background task: decay check completed.", periods_applied=periods)
        except Exception as e:
            # apply_decay logs its own store failures; anything reaching here is a bug in the loop
            log.error("Background task: Unhandled error during decay check.", error=str(e), exc_info=True)
    log.info("Background decay task stopped.")


@app.on_event("startup")
async def startup_event():
    global _keep_checking
    _keep_checking = True
    log.info("Application startup: Loading pet profile and starting decay task.")
    app.state.store = await run_in_threadpool(build_store, settings)
    app.state.notification_feed = NotificationFeed(forward_to=LoggingNotificationSink())
    app.state.engine = PetEngine(
        app.state.store,
        notifier=app.state.notification_feed,
        storage_key=settings.PROFILE_STORAGE_KEY,
        user_id=settings.DEFAULT_USER_ID,
    )
    await run_in_threadpool(app.state.engine.initialize)
    app.state.decay_task = asyncio.create_task(periodic_decay_check(app.state.engine))


@app.on_event("shutdown")
async def shutdown_event():
    global _keep_checking
    _keep_checking = False
    log.info("Application shutdown: Stopping decay task.")

    task = getattr(app.state, "decay_task", None)
    if task:
        # The task sleeps for a full interval, so cancel rather than wait
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("Background decay task finished.")

    store = getattr(app.state, "store", None)
    if store is not None:
        await run_in_threadpool(store.close)
    log.info("Application shutdown complete.")


app.include_router(pet_interactions.router, prefix=settings.API_V1_STR, tags=["pet"])


@app.get("/")
async def root():
    log.info("Root endpoint accessed.")
    return {"message": f"Welcome to the {settings.PROJECT_NAME} API!"}


log.info(f"{settings.PROJECT_NAME} API starting up...")
