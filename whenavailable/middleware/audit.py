"""
Access log: one JSON line per request on the "whenavailable.audit" logger.

Lines carry the slot_id / booking_id of the matched route so the traffic of
one link can be followed. Health checks are not logged.
"""

import json
import logging
import time

from fastapi import Request

from .rate_limit import get_client_ip

logger = logging.getLogger("whenavailable.audit")

QUIET_PATHS = frozenset({"/health"})
ID_PARAMS = ("slot_id", "booking_id")


async def audit_middleware(request: Request, call_next):
    if request.url.path in QUIET_PATHS:
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)

    record = {
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "ip": get_client_ip(request),
        "ms": round((time.perf_counter() - started) * 1000, 1),
    }
    # populated by the router once the route matched
    params = request.scope.get("path_params") or {}
    record.update({name: params[name] for name in ID_PARAMS if name in params})

    logger.info(json.dumps(record))
    return response
