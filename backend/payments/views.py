"""Endpoints du checkout Stripe.
- POST /checkout: liste d'articles explicite (invité ou authentifié), forme canonique.
- POST /checkout/cart: panier serveur de l'utilisateur authentifié.
- GET /checkout/verify: retour de Stripe, matérialise la commande (idempotent).
- POST /checkout/webhook: événement Stripe signé, même reconciler (exempté CSRF).
Sécurité:
- optional_rate_limit: limite la fréquence de création de sessions.
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.utils.security import get_optional_user, require_user
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.responses import ok
from backend.utils.errors import InvalidInputError
from backend.orders import service as orders_service
from . import service as payments_service
from . import stripe_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


class CheckoutItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId")
    quantity: int = 1


class ShippingAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    full_name: Optional[str] = Field(default=None, alias="fullName")
    address_line1: Optional[str] = Field(default=None, alias="addressLine1")
    address_line2: Optional[str] = Field(default=None, alias="addressLine2")
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(default=None, alias="zipCode")
    country: Optional[str] = None
    phone: Optional[str] = None


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CheckoutItem] = Field(default_factory=list)
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = Field(default=None, alias="shippingAddress")


class CartCheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = Field(default=None, alias="shippingAddress")


def _address(value: Optional[ShippingAddress]) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    return value.model_dump(by_alias=True, exclude_none=True) or None

# module backend.payments.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(req: CheckoutRequest, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """
    Crée une session Checkout Stripe depuis une liste d'articles.
    - Entrée JSON: {items: [{productId, quantity}], email, name?, shippingAddress?}
    - Un utilisateur connecté sans e-mail explicite utilise son e-mail de compte.
    - Erreurs: 400 panier vide / e-mail manquant, 404 produit inconnu, 502 Stripe.
    """
    session = payments_service.create_checkout_session(
        [{"product_id": i.product_id, "quantity": i.quantity} for i in req.items],
        email=req.email,
        name=req.name,
        shipping_address=_address(req.shipping_address),
        user=user,
    )
    return ok(session)

@router.post("/cart", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_cart_checkout(req: CartCheckoutRequest, user: Dict[str, Any] = Depends(require_user)):
    session = payments_service.create_cart_checkout_session(
        user,
        email=req.email,
        name=req.name,
        shipping_address=_address(req.shipping_address),
    )
    return ok(session)

@router.get("/verify")
def verify_checkout(
    background_tasks: BackgroundTasks,
    session_id: Optional[str] = None,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """
    Retour de Stripe: vérifie le paiement et crée la commande une seule fois.
    - 400 si session_id manquant ou paiement non confirmé
    - 403 si la session appartient à un autre utilisateur
    """
    if not session_id:
        raise InvalidInputError("session_id manquant")
    order, created = orders_service.reconcile_session(session_id, current_user=user, background_tasks=background_tasks)
    return ok(order, message="Commande créée" if created else "Commande déjà créée")

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request, background_tasks: BackgroundTasks):
    """
    Webhook Stripe: checkout.session.completed -> reconciler idempotent.
    - Signature: stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET), 400 si invalide
    - Réponses: {"status": "ok", "orderId", "created"} ou {"status": "ignored"}
    """
    event = await stripe_client.parse_event(request)
    result = await run_in_threadpool(orders_service.handle_webhook_event, event, background_tasks)
    logger.info("checkout.webhook type=%s status=%s", event.get("type"), result.get("status"))
    return ok(result)
