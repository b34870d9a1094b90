import threading
import time
from collections import deque
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, Response

from ..auth.security import decode_access_token
from ..config import SESSION_COOKIE_NAME


@dataclass
class Throttle:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int

    def headers(self) -> dict[str, str]:
        headers = {"X-RateLimit-Limit": str(self.limit), "X-RateLimit-Remaining": str(self.remaining)}
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


class SlidingWindowLimiter:
    """Per-key request timestamps kept in process memory.

    A key whose window has drained is dropped on the next ``hit`` so the table
    only holds callers that were active within their window.
    """

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window_seconds: int, now: float | None = None) -> Throttle:
        now = time.time() if now is None else now
        cutoff = now - window_seconds
        with self._lock:
            self._prune(cutoff)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                retry_after = max(1, int(hits[0] + window_seconds - now))
                return Throttle(allowed=False, limit=limit, remaining=0, retry_after_seconds=retry_after)
            hits.append(now)
            return Throttle(allowed=True, limit=limit, remaining=limit - len(hits), retry_after_seconds=0)

    def _prune(self, cutoff: float) -> None:
        # Windows differ per route, so only keys with nothing newer than this cutoff go.
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def tracked_keys(self) -> set[str]:
        with self._lock:
            return set(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


limiter = SlidingWindowLimiter()


def _token_subject(token: str) -> str | None:
    try:
        payload = decode_access_token(token)
    except HTTPException:
        return None
    subject = str(payload.get("sub") or "").strip()
    return subject or None


def _caller_key(request: Request) -> str:
    # A signed-in player keeps one bucket across re-logins and devices; anonymous callers share by address.
    token = request.cookies.get(SESSION_COOKIE_NAME, "").strip()
    if not token:
        auth = request.headers.get("authorization", "").strip()
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
    if token:
        subject = _token_subject(token)
        if subject:
            return f"user:{subject}"
    forwarded = request.headers.get("x-forwarded-for", "").strip()
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "ip:unknown"


def rate_limit_dependency(route_key: str, limit: int, window_seconds: int):
    def _dep(request: Request, response: Response) -> None:
        decision = limiter.hit(f"{route_key}:{_caller_key(request)}", limit=limit, window_seconds=window_seconds)
        if not decision.allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Too many requests. Retry in {decision.retry_after_seconds}s",
                headers=decision.headers(),
            )
        response.headers.update(decision.headers())

    return Depends(_dep)
