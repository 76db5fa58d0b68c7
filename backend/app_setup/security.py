from fastapi import FastAPI
from backend.config import SUPABASE_URL, COOKIE_SECURE

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")

        # API JSON: la CSP ne laisse passer que Swagger (docs) et Supabase
        swagger_cdns = ["https://cdn.jsdelivr.net"]
        connect = ["'self'"] + ([SUPABASE_URL] if SUPABASE_URL else [])
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; object-src 'none'; frame-ancestors 'none'; "
            "img-src 'self' data: https://fastapi.tiangolo.com; "
            f"style-src 'self' 'unsafe-inline' {' '.join(swagger_cdns)}; "
            f"script-src 'self' 'unsafe-inline' {' '.join(swagger_cdns)}; "
            f"connect-src {' '.join(connect)}"
        )
        return response
