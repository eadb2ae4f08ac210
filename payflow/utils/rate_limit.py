from typing import Dict, Any
from fastapi import Request, Response, HTTPException
from fastapi_limiter.depends import RateLimiter
import os
import time
import hashlib

from payflow.config import SESSION_COOKIE_NAME

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        def _visitor_key_from_request(req: Request) -> str:
            # Priorité: cookie de session (hashé) puis IP
            token = req.cookies.get(SESSION_COOKIE_NAME)
            path = req.url.path
            if token:
                h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
                return f"visitor:{h}:{path}"
            ip = req.client.host if req.client else "local"
            return f"ip:{ip}:{path}"

        # Forcer le fallback mémoire en DEV si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _visitor_key_from_request(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        # Respecter le flag global
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        async def _identifier(req: Request) -> str:
            return _visitor_key_from_request(req)
        limiter = RateLimiter(times=times, seconds=seconds, identifier=_identifier)
        # Le 429 levé par le limiter doit remonter tel quel
        try:
            return await limiter(request, response)
        except HTTPException:
            raise
        except Exception:
            # fastapi-limiter en échec (Redis indisponible...): pas de 429 en prod;
            # en dev, activer LOCAL_RATE_LIMIT_FALLBACK=1
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)

    limiter_ready = False
    backend = None
    try:
        from fastapi_limiter import FastAPILimiter
        limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
        backend = "redis" if limiter_ready else None
    except Exception:
        limiter_ready = False
        backend = None

    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
    }
