from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
import logging
from backend.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

def _client_key(req: Request) -> str:
    # Priorité: session cookie (hashé) puis IP
    token = req.cookies.get(COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de rate limiting tolérante:
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (app.state)
    - app.state.rate_limit_enabled=False: aucune limite
    - sinon fastapi-limiter (Redis); une indisponibilité du limiteur ne bloque pas la requête
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _client_key(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Trop de requêtes")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return _client_key(req)

        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            logger.warning("rate_limit: limiter indisponible, requête laissée passer path=%s", request.url.path)
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

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
    }

    if backend == "redis":
        from urllib.parse import urlparse
        redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
        if redis_url:
            p = urlparse(redis_url)
            info["redis"] = {
                "scheme": p.scheme,
                "host": p.hostname,
                "port": p.port,
            }

    return info
