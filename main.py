import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adapters.entry.http.admin_router import router as admin_router
from adapters.entry.http.market_router import router as market_router
from adapters.entry.http.trigger_router import router as triggers_router

from adapters.external.database.mongodb_client import get_mongo_client
from config.settings import settings
from workers.dca_supervisor import DcaSupervisor


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting %s (lifespan startup)...", settings.APP_NAME)

    mongo_client = get_mongo_client()
    db = mongo_client[settings.MONGODB_DB_NAME]

    try:
        # Fail fast: without the store no pass can run
        await db.command("ping")
        logger.info("MongoDB ping ok.")
    except Exception:
        logger.exception("MongoDB ping failed (startup).")
        mongo_client.close()
        raise

    supervisor = DcaSupervisor(mongo_client=mongo_client)
    await supervisor.start()

    app.state.mongo_client = mongo_client
    app.state.mongo_db = db
    app.state.supervisor = supervisor
    app.state.execute_uc = supervisor.execute_uc
    app.state.strategy_repo = supervisor.strategy_repo
    app.state.log_repo = supervisor.log_repo
    app.state.gateway = supervisor.gateway
    app.state.price_oracle = supervisor.price_oracle

    try:
        yield
    finally:
        logger.info("Shutting down %s (lifespan shutdown)...", settings.APP_NAME)
        await supervisor.stop()
        mongo_client.close()
        logger.info("MongoDB client closed.")


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)

# Routers devem ser incluídos fora do lifespan
app.include_router(admin_router)
app.include_router(market_router)
app.include_router(triggers_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
