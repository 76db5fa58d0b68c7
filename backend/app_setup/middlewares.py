"""
Middlewares transverses de l'application.
- register_basic_middlewares: session signée (panier invité), CORS, TrustedHost, X-Forwarded-*.
- register_no_cache_middleware: empêche la mise en cache des réponses panier, checkout et admin.
"""
from fastapi import Request, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
from backend.config import COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS, SESSION_SECRET_KEY

SESSION_COOKIE_NAME = "pb_session"
NO_CACHE_PREFIXES = ("/api/v1/cart", "/api/v1/guest-cart", "/api/v1/checkout", "/api/v1/admin", "/api/v1/orders")

def register_basic_middlewares(app: FastAPI) -> None:
    """
    Ajoute les middlewares « de base »:
    - SessionMiddleware: cookie signé (itsdangerous) portant le panier invité.
    - CORSMiddleware: autorise les origines définies (dev/prod).
    - TrustedHostMiddleware: limite les hôtes acceptés (défense host header).
    - ProxyHeadersMiddleware: fait confiance aux en-têtes du proxy (x-forwarded-*).
    """
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        session_cookie=SESSION_COOKIE_NAME,
        same_site="lax",
        https_only=COOKIE_SECURE,
        max_age=60 * 60 * 24 * 30,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    # Render, Nginx, etc.
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache_for_protected(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response
