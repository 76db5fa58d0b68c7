"""
Checkout Session Builder: orchestre catalogue, line_items, metadata et Stripe.
Deux entrées alimentent le même constructeur:
- liste d'articles explicite (invité ou authentifié), forme canonique
- panier serveur de l'utilisateur authentifié
Rien n'est persisté: la commande n'existe qu'après réconciliation du paiement.
"""
from typing import Any, Dict, List, Optional
import logging

from email_validator import validate_email, EmailNotValidError

from backend import config
from backend.catalog import service as catalog_service
from backend.cart import service as cart_service
from backend.utils.errors import InvalidInputError
from . import line_items as line_logic
from . import metadata as meta
from . import stripe_client

logger = logging.getLogger(__name__)

def _normalize_email(email: Optional[str]) -> str:
    if not email or not str(email).strip():
        raise InvalidInputError("Email requis")
    try:
        return validate_email(str(email).strip(), check_deliverability=False).normalized
    except EmailNotValidError:
        raise InvalidInputError("Email invalide")

def _redirect_urls() -> Dict[str, str]:
    return {
        "success_url": f"{config.BASE_URL}{config.CHECKOUT_SUCCESS_PATH}",
        "cancel_url": f"{config.BASE_URL}{config.CHECKOUT_CANCEL_PATH}",
    }

def create_checkout_session(
    items: List[Dict[str, Any]],
    email: Optional[str] = None,
    name: Optional[str] = None,
    shipping_address: Optional[Dict[str, Any]] = None,
    user: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Prépare la session Stripe à partir d'une liste d'articles.
    Étapes:
    1) Valide les articles et l'e-mail (un utilisateur connecté utilise son e-mail de compte par défaut)
    2) Une seule lecture catalogue; un identifiant inconnu fait échouer tout l'appel
    3) Prix unitaire = prix soldé sinon prix, converti en centimes
    4) line_items + metadata, puis création de la session hébergée
    Retour: {"sessionId", "url"}
    """
    quantities = line_logic.aggregate_quantities(items)
    user_id = str(user["id"]) if user and user.get("id") else None
    buyer_email = _normalize_email(email or (user or {}).get("email"))

    products = catalog_service.require_products(quantities.keys())
    lines = line_logic.priced_lines(products, quantities)

    metadata = meta.encode_metadata(
        lines,
        user_id=user_id,
        guest_email=buyer_email,
        guest_name=(name or "").strip() or None,
        shipping_address=shipping_address,
    )
    session = stripe_client.create_session(
        line_items=line_logic.to_line_items(lines, config.STRIPE_CURRENCY),
        metadata=metadata,
        customer_email=buyer_email,
        **_redirect_urls(),
    )
    logger.info(
        "checkout.session session_id=%s user_id=%s lignes=%s total=%s",
        session.get("id"), user_id, len(lines), line_logic.total_minor_units(lines),
    )
    return {"sessionId": session.get("id"), "url": session.get("url")}

def create_cart_checkout_session(
    user: Dict[str, Any],
    email: Optional[str] = None,
    name: Optional[str] = None,
    shipping_address: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Variante: le contenu du Cart Store de l'utilisateur alimente le même constructeur."""
    items = cart_service.checkout_items(user["id"])
    if not items:
        raise InvalidInputError("Panier vide")
    return create_checkout_session(items, email=email, name=name, shipping_address=shipping_address, user=user)
