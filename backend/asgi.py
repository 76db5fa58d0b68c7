"""
ASGI entrypoint: expose `app` pour les process managers (ex: uvicorn backend.asgi:app).
Toute la configuration FastAPI est centralisée dans backend.app_setup.factory.
"""

from backend.app import app
