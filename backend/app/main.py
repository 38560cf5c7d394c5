import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis.exceptions import RedisError

from .config import settings
from .database import SessionLocal
from .redis_client import create_redis_client
from .routers import appointments, slots
from .services.slots import AvailabilityEngine, RedisTTLCache, SqlSlotDataSource, TTLCache

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    redis = create_redis_client()
    cache = RedisTTLCache(redis) if redis is not None else TTLCache()
    logger.info("Availability cache: %s", type(cache).__name__)

    app.state.redis = redis
    app.state.availability_engine = AvailabilityEngine(SqlSlotDataSource(SessionLocal), cache)
    try:
        yield
    finally:
        if redis is not None:
            await redis.aclose()


app = FastAPI(title="Booking API (SQLite)", lifespan=lifespan)

app.include_router(slots.router)
app.include_router(appointments.router)


@app.get("/health")
async def health():
    redis = app.state.redis
    if redis is None:
        return {"redis": None}
    try:
        return {"redis": await redis.ping()}
    except RedisError:
        logger.warning("Redis ping failed", exc_info=True)
        return {"redis": False}
