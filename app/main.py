import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.config import get_settings
from app.database import init_db, async_session
from app.routes import integrations, user_integrations
from app.utils.errors import register_error_handlers
from app.utils.middleware import setup_middleware

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    if settings.SEED_ON_STARTUP:
        from app.seed import seed_catalog

        async with async_session() as db:
            await seed_catalog(db)
            await db.commit()

    logger.info("Integration marketplace API started")
    yield
    logger.info("Integration marketplace API stopped")


app = FastAPI(
    title="Integration Marketplace API",
    description="Catalog and connection management for third-party integrations",
    version="1.0.0",
    lifespan=lifespan,
)

setup_middleware(app)
register_error_handlers(app)

app.include_router(integrations.router, prefix="/api")
app.include_router(user_integrations.router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "integration-marketplace"}
