# whenavailable/main.py

import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis
from redis.exceptions import RedisError

from .config import settings
from .errors import BookingError, DependencyError, ValidationError
from .middleware.audit import audit_middleware
from .redis_client import get_redis
from .routers import bookings, debug, slots

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks: list[asyncio.Task] = []
    if settings.notifications_enabled:
        from .events.consumer import notify_consumer_loop, retry_scheduler_loop

        tasks.append(asyncio.create_task(notify_consumer_loop(settings.redis_url)))
        tasks.append(asyncio.create_task(retry_scheduler_loop(settings.redis_url)))
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


app = FastAPI(title="WhenAvailable API", lifespan=lifespan)

app.middleware("http")(audit_middleware)


# ===== Error rendering =====

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        text = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"{field}: {text}" if field else text
    return JSONResponse(status_code=400, content=ValidationError(message).to_dict())


@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError):
    logger.error(f"Redis failure on {request.method} {request.url.path}: {exc}")
    error = DependencyError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(slots.router)
app.include_router(bookings.router)
app.include_router(debug.router)


@app.get("/health")
def health(redis: Redis = Depends(get_redis)):
    connected = False
    operational = False
    try:
        connected = bool(redis.ping())
        test_value = str(time.time())
        redis.set("health:test", test_value, ex=10)
        operational = redis.get("health:test") == test_value
        redis.delete("health:test")
    except RedisError as e:
        logger.error(f"Health check: redis unavailable: {e}")

    return {
        "status": "ok" if operational else "degraded",
        "services": {
            "redis": {"connected": connected, "operational": operational},
            "email": {"configured": settings.email_configured},
        },
    }
