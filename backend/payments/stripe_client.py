"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Toute erreur du SDK est convertie en UpstreamError (502); aucune donnée n'est persistée ici.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe
from fastapi import Request

from backend import config
from backend.utils.errors import InvalidInputError, UpstreamError

logger = logging.getLogger(__name__)

# module backend.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - UpstreamError si la clé n'est pas configurée (plutôt qu'une erreur SDK obscure).
    """
    if not config.STRIPE_SECRET_KEY:
        raise UpstreamError("Stripe non configuré (STRIPE_SECRET_KEY manquant)")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    # Les objets Stripe exposent to_dict() (récursif); les fakes de test sont déjà des dicts
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    customer_email: Optional[str] = None,
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout hébergée.
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": mode,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "payment_method_types": ["card"],
    }
    if customer_email:
        params["customer_email"] = customer_email
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.exception("stripe: création de session échouée")
        raise UpstreamError(f"Création de la session de paiement impossible: {e.user_message or str(e)}")
    return _as_dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "metadata", etc.
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError:
        logger.warning("stripe: session inconnue session_id=%s", session_id)
        raise InvalidInputError("Session de paiement inconnue")
    except stripe.StripeError as e:
        logger.exception("stripe: lecture de session échouée session_id=%s", session_id)
        raise UpstreamError(f"Vérification du paiement impossible: {e.user_message or str(e)}")
    return _as_dict(session)

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    - InvalidInputError si la signature ou le payload est invalide.
    """
    require_stripe()
    if not config.STRIPE_WEBHOOK_SECRET:
        raise UpstreamError("Webhook Stripe non configuré (STRIPE_WEBHOOK_SECRET manquant)")
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("stripe: webhook rejeté (signature ou payload invalide)")
        raise InvalidInputError("Invalid Stripe webhook payload")
    return _as_dict(event)
