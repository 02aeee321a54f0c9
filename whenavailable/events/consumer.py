"""
Notification consumer.

    events:notify        list, RPUSHed by the API, drained with BLPOP
    events:notify:retry  sorted set, score = unix time the retry is due
    events:notify:dead   list of {"reason", "failed_at", "event"} records

A failed delivery is retried after RETRY_DELAYS[attempt - 1] seconds, sending
only to the recipients still pending. After MAX_ATTEMPTS the event is
dead-lettered. Both loops run as asyncio tasks in the app lifespan.
"""

import asyncio
import json
import logging
import time
from typing import Awaitable, Callable, Optional

import redis.asyncio as aioredis

from ..services.events import NOTIFY_QUEUE
from .booking import DeliveryFailed, handle_booking_event

logger = logging.getLogger(__name__)

RETRY_SET = f"{NOTIFY_QUEUE}:retry"
DEAD_QUEUE = f"{NOTIFY_QUEUE}:dead"

RETRY_DELAYS = (30, 300)
MAX_ATTEMPTS = len(RETRY_DELAYS) + 1
RETRY_POLL_SECONDS = 5


async def consume_event(r: aioredis.Redis, raw: str, now: Optional[float] = None) -> None:
    """Deliver one queued event; schedule a retry or dead-letter it on failure."""
    now = time.time() if now is None else now
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in {NOTIFY_QUEUE}: {raw[:200]}")
        await _dead_letter(r, raw, "invalid json", now)
        return

    try:
        await handle_booking_event(data)
    except DeliveryFailed as e:
        logger.warning(str(e))
        data["pending"] = e.roles
        await _schedule_retry(r, data, str(e), now)
    except Exception as e:
        logger.exception(f"Event type={data.get('type')} booking={data.get('booking_id')} failed")
        await _schedule_retry(r, data, repr(e), now)


async def _schedule_retry(r: aioredis.Redis, data: dict, reason: str, now: float) -> None:
    attempt = data.get("attempt", 1)
    if attempt >= MAX_ATTEMPTS:
        await _dead_letter(r, data, reason, now)
        return

    data["attempt"] = attempt + 1
    due = now + RETRY_DELAYS[attempt - 1]
    await r.zadd(RETRY_SET, {json.dumps(data): due})
    logger.info(
        f"booking={data.get('booking_id')} {data.get('type')} retry {attempt + 1}/{MAX_ATTEMPTS} "
        f"in {RETRY_DELAYS[attempt - 1]}s (pending: {data.get('pending', 'all')})"
    )


async def _dead_letter(r: aioredis.Redis, event, reason: str, now: float) -> None:
    record = {"reason": reason, "failed_at": int(now), "event": event}
    await r.rpush(DEAD_QUEUE, json.dumps(record))
    booking_id = event.get("booking_id") if isinstance(event, dict) else None
    logger.error(f"Notification dead-lettered (booking={booking_id}): {reason}")


async def release_due_retries(r: aioredis.Redis, now: Optional[float] = None) -> int:
    """Move retries that are due back onto events:notify. Returns how many moved."""
    now = time.time() if now is None else now
    moved = 0
    for raw in await r.zrangebyscore(RETRY_SET, 0, now):
        # ZREM decides which process owns the retry
        if await r.zrem(RETRY_SET, raw):
            await r.rpush(NOTIFY_QUEUE, raw)
            moved += 1
    return moved


# ── Loops ────────────────────────────────────────────────────────────────────


async def _run(name: str, redis_url: str, step: Callable[[aioredis.Redis], Awaitable[None]], pause: float) -> None:
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info(f"{name} started")
    try:
        while True:
            try:
                await step(r)
            except asyncio.CancelledError:
                logger.info(f"{name} cancelled")
                raise
            except Exception:
                logger.exception(f"{name} error, pausing {pause}s")
                await asyncio.sleep(pause)
    finally:
        await r.aclose()


async def _notify_step(r: aioredis.Redis) -> None:
    item = await r.blpop(NOTIFY_QUEUE, timeout=5)
    if item is not None:
        await consume_event(r, item[1])


async def _retry_step(r: aioredis.Redis) -> None:
    if not await release_due_retries(r):
        await asyncio.sleep(RETRY_POLL_SECONDS)


async def notify_consumer_loop(redis_url: str) -> None:
    await _run("notify consumer", redis_url, _notify_step, pause=2)


async def retry_scheduler_loop(redis_url: str) -> None:
    await _run("retry scheduler", redis_url, _retry_step, pause=RETRY_POLL_SECONDS)
