"""
Registre central des routers API v1 et health.
"""
from fastapi import FastAPI
from backend.auth.views import api_router as auth_api_router
from backend.catalog.views import router as catalog_router
from backend.cart.views import router as cart_router, guest_router as guest_cart_router
from backend.payments.views import router as checkout_router
from backend.orders.views import router as orders_router
from backend.salon.views import router as salon_router
from backend.admin.views import router as admin_router
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    app.include_router(auth_api_router)
    app.include_router(catalog_router)
    app.include_router(cart_router)
    app.include_router(guest_cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(salon_router)
    app.include_router(admin_router)
    app.include_router(health_router)
