# api/middleware/idempotency.py
"""
Idempotency-Key deduplication for mutating endpoints.

Clients send an `Idempotency-Key` header on POST requests (bid submission,
RFQ initiation, award). The middleware:
  1. On first request: processes normally and caches the response in Redis (24h TTL).
  2. On replay: returns the cached response without re-executing the handler,
     so a retried bid submission does not append a second revision.

Disabled when no Redis is configured.
"""

import hashlib
import json

from fastapi import Request
from fastapi.responses import JSONResponse
import httpx
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import structlog

from api.services.cache import UpstashClient, cache

logger = structlog.get_logger()

_IDEMPOTENCY_TTL = 86_400  # 24 hours
_LOCK_TTL = 30  # prevent concurrent duplicate requests
_APPLICABLE_PATHS_PREFIX = "/api/v1/"


def _caller_scope(request: Request) -> str:
    """Scope keys to the caller so two users cannot replay each other's responses."""
    auth = request.headers.get("Authorization")
    if not auth:
        return "anonymous"
    return hashlib.sha256(auth.encode()).hexdigest()[:16]


class IdempotencyMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, client: UpstashClient = cache) -> None:
        super().__init__(app)
        self.cache = client

    async def dispatch(self, request: Request, call_next):
        if (
            request.method != "POST"
            or not request.url.path.startswith(_APPLICABLE_PATHS_PREFIX)
            or not self.cache.enabled
        ):
            return await call_next(request)

        idempotency_key = request.headers.get("Idempotency-Key")
        if not idempotency_key:
            return await call_next(request)

        scope = _caller_scope(request)
        cache_key = f"idempotency:{scope}:{idempotency_key}"
        lock_key = f"idempotency_lock:{scope}:{idempotency_key}"

        try:
            cached = await self.cache.get(cache_key)
            if cached:
                logger.info(
                    "idempotency_cache_hit",
                    key=idempotency_key,
                    path=request.url.path,
                )
                payload = json.loads(cached)
                return JSONResponse(
                    status_code=payload["status_code"],
                    content=payload["body"],
                    headers={"X-Idempotent-Replayed": "true"},
                )

            acquired = await self.cache.setnx(lock_key, "1", ex=_LOCK_TTL)
            if not acquired:
                return JSONResponse(
                    status_code=409,
                    content={
                        "error": {
                            "code": "CONCURRENT_REQUEST",
                            "message": "A request with this Idempotency-Key is already being processed",
                        }
                    },
                )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("idempotency_cache_check_failed", error=str(e))
            return await call_next(request)

        response = await call_next(request)

        # Cache 2xx and 4xx. Do NOT cache 5xx; let the client retry.
        if response.status_code < 500:
            body_bytes = b""
            async for chunk in response.body_iterator:
                body_bytes += chunk

            body_text = body_bytes.decode("utf-8")
            try:
                body_json = json.loads(body_text)
            except ValueError:
                body_json = {"raw": body_text}

            try:
                await self.cache.set(
                    cache_key,
                    json.dumps({"status_code": response.status_code, "body": body_json}),
                    _IDEMPOTENCY_TTL,
                )
            except httpx.HTTPError as e:
                logger.warning("idempotency_cache_store_failed", error=str(e))

            response = JSONResponse(
                status_code=response.status_code,
                content=body_json,
                headers={
                    k: v for k, v in response.headers.items()
                    if k.lower() not in ("content-length", "content-type")
                },
            )

        try:
            await self.cache.delete(lock_key)
        except httpx.HTTPError as e:
            logger.warning("idempotency_lock_release_failed", error=str(e))

        return response
