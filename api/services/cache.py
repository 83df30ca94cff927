from __future__ import annotations
# api/services/cache.py
from typing import Optional

import httpx

from api.config import settings

_http: Optional[httpx.AsyncClient] = None


def _client() -> httpx.AsyncClient:
    global _http
    if _http is None or _http.is_closed:
        _http = httpx.AsyncClient(
            timeout=httpx.Timeout(5.0, connect=2.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10, keepalive_expiry=30),
        )
    return _http


class UpstashClient:
    """Minimal Upstash Redis REST client.

    Commands are POSTed as a JSON array, so values may contain any characters
    (cached response bodies are JSON).
    """

    def __init__(self, url: str, token: str):
        self.url = url.rstrip("/")
        self.headers = {"Authorization": f"Bearer {token}"}

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def command(self, *args):
        r = await _client().post(self.url, headers=self.headers, json=[str(a) for a in args])
        r.raise_for_status()
        return r.json().get("result")

    async def get(self, key: str) -> str | None:
        return await self.command("GET", key)

    async def set(self, key: str, value: str, ex: int = 300):
        await self.command("SET", key, value, "EX", ex)

    async def setnx(self, key: str, value: str, ex: int = 300) -> bool:
        """Set key only if it does not exist. Returns True if the key was set."""
        return await self.command("SET", key, value, "NX", "EX", ex) == "OK"

    async def delete(self, key: str):
        await self.command("DEL", key)

    async def ping(self) -> bool:
        return await self.command("PING") == "PONG"


cache = UpstashClient(settings.UPSTASH_REDIS_REST_URL, settings.UPSTASH_REDIS_REST_TOKEN)
