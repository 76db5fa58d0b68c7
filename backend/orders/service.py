"""
Order Reconciler et cas d'usage des commandes.
reconcile_session est idempotent par identifiant de session Stripe:
1) commande existante -> retournée telle quelle (sans adresse pour un appelant anonyme si elle appartient à un compte)
2) session Stripe non payée -> PaymentIncompleteError
3) panier figé dans les metadata -> lignes de commande (prix = montant effectivement facturé)
4) insertion; une violation d'unicité (vérification concurrente) renvoie la ligne gagnante
5) panier serveur de l'acheteur vidé, e-mail de confirmation en tâche de fond
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
import logging

from fastapi import BackgroundTasks
from postgrest.exceptions import APIError

from backend.catalog import service as catalog_service
from backend.cart import service as cart_service
from backend.infra.supabase_client import is_unique_violation
from backend.notifications import service as notifications
from backend.payments import metadata as meta
from backend.payments import stripe_client
from backend.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    PaymentIncompleteError,
)
from backend.utils.validators import is_uuid, optional_text
from . import repository

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
ORDER_TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}
ADMIN_WRITABLE_FIELDS = {"status", "tracking_number"}
MAX_PAGE_SIZE = 100

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def _check_owner(owner_id: Optional[str], current_user: Optional[Dict[str, Any]]) -> None:
    caller_id = str((current_user or {}).get("id") or "")
    if caller_id and owner_id and str(owner_id) != caller_id:
        raise ForbiddenError("Session de paiement appartenant à un autre utilisateur")

def _redacted_for(order: Dict[str, Any], current_user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Relecture anonyme d'une commande de compte: pas d'adresse de livraison."""
    if order.get("user_id") and not (current_user or {}).get("id"):
        return {k: v for k, v in order.items() if k != "shipping_address"}
    return order

def build_order(session_id: str, session: Dict[str, Any]) -> Dict[str, Any]:
    """Construit la ligne orders à partir d'une session Stripe payée."""
    metadata = session.get("metadata") or {}
    items = meta.decode_items(metadata)
    identity = meta.extract_identity(metadata)

    products = catalog_service.get_products_map(i["product_id"] for i in items)
    order_items = []
    total_minor = 0
    for item in items:
        product = products.get(item["product_id"]) or {}
        total_minor += item["unit_amount"] * item["quantity"]
        order_items.append({
            "product_id": item["product_id"],
            # Produit supprimé depuis le paiement: nom générique
            "name": product.get("name") or "Article",
            "price": catalog_service.from_minor_units(item["unit_amount"]),
            "quantity": item["quantity"],
            "image": catalog_service.first_image(product) if product else None,
        })

    row: Dict[str, Any] = {
        "items": order_items,
        "total": catalog_service.from_minor_units(total_minor),
        "payment_method": "card",
        "payment_status": "paid",
        "status": "processing",
        "stripe_session_id": session_id,
        "shipping_address": meta.decode_shipping_address(metadata),
        "paid_at": _now(),
    }
    if identity["user_id"]:
        row["user_id"] = identity["user_id"]
    else:
        details = session.get("customer_details") or {}
        guest_email = identity["guest_email"] or session.get("customer_email") or details.get("email")
        if not guest_email:
            raise InvalidStateError("Aucune identité d'acheteur dans la session de paiement")
        row["guest_email"] = guest_email
        row["guest_name"] = identity["guest_name"] or details.get("name")
    return row

def reconcile_session(
    session_id: str,
    current_user: Optional[Dict[str, Any]] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Tuple[Dict[str, Any], bool]:
    """
    Matérialise la commande d'une session payée, une seule fois.
    Retour: (commande, created) avec created=False si elle existait déjà.
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise InvalidInputError("session_id manquant")

    existing = repository.get_order_by_session_id(session_id)
    if existing:
        _check_owner(existing.get("user_id"), current_user)
        return _redacted_for(existing, current_user), False

    session = stripe_client.get_session(session_id)
    payment_status = session.get("payment_status") or ""
    if payment_status != "paid":
        raise PaymentIncompleteError(f"Paiement non confirmé (payment_status={payment_status})")

    metadata = session.get("metadata") or {}
    _check_owner(meta.extract_identity(metadata)["user_id"], current_user)

    row = build_order(session_id, session)
    try:
        order = repository.insert_order(row)
    except APIError as e:
        if not is_unique_violation(e):
            raise
        winner = repository.get_order_by_session_id(session_id)
        if not winner:
            raise
        logger.info("orders.reconcile concurrent session_id=%s order_id=%s", session_id, winner.get("id"))
        return _redacted_for(winner, current_user), False

    logger.info(
        "orders.reconcile créée session_id=%s order_id=%s total=%s", session_id, order.get("id"), order.get("total")
    )

    user_id = order.get("user_id")
    if user_id:
        try:
            cart_service.clear(str(user_id))
        except Exception:
            logger.exception("orders.reconcile: vidage du panier échoué user_id=%s", user_id)

    notifications.dispatch(
        background_tasks,
        notifications.send_order_confirmation,
        order,
        metadata.get("guest_email") or order.get("guest_email") or (current_user or {}).get("email"),
        order.get("guest_name") or metadata.get("guest_name"),
    )
    return order, True

def handle_webhook_event(event: Dict[str, Any], background_tasks: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    """
    checkout.session.completed / async_payment_succeeded -> même reconciler idempotent.
    Une session encore impayée (paiement différé) est ignorée: Stripe renverra l'événement de succès.
    """
    event_type = (event or {}).get("type")
    if event_type not in ("checkout.session.completed", "checkout.session.async_payment_succeeded"):
        return {"status": "ignored"}
    obj = ((event.get("data") or {}).get("object") or {})
    session_id = obj.get("id")
    if obj.get("payment_status") and obj.get("payment_status") != "paid":
        logger.info("orders.webhook session non payée ignorée session_id=%s", session_id)
        return {"status": "ignored"}
    order, created = reconcile_session(session_id, background_tasks=background_tasks)
    return {"status": "ok", "orderId": order.get("id"), "created": created}

def _page_bounds(page: int, limit: int) -> Tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 10), 1), MAX_PAGE_SIZE)
    return page, limit

def _paginated(rows, total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "orders": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }

def list_user_orders(user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    page, limit = _page_bounds(page, limit)
    rows, total = repository.list_user_orders(user_id, limit=limit, offset=(page - 1) * limit)
    return _paginated(rows, total, page, limit)

def list_all_orders(page: int = 1, limit: int = 20, status: Optional[str] = None) -> Dict[str, Any]:
    if status and status not in ORDER_STATUSES:
        raise InvalidInputError(f"Statut inconnu: {status}")
    page, limit = _page_bounds(page, limit)
    rows, total = repository.list_all_orders(limit=limit, offset=(page - 1) * limit, status=status)
    return _paginated(rows, total, page, limit)

def update_order(order_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mise à jour admin restreinte à {status, tracking_number}.
    - Champ hors liste (ex: payment_status, total) -> InvalidInputError
    - Transition de statut hors machine d'états -> ConflictError (même statut = sans effet)
    """
    forbidden = sorted(set(data) - ADMIN_WRITABLE_FIELDS)
    if forbidden:
        raise InvalidInputError(f"Champ non modifiable: {', '.join(forbidden)}")
    order = repository.get_order(order_id) if is_uuid(order_id) else None
    if not order:
        raise NotFoundError("Commande introuvable")

    changes: Dict[str, Any] = {}
    new_status = data.get("status")
    if new_status is not None:
        if new_status not in ORDER_STATUSES:
            raise InvalidInputError(f"Statut inconnu: {new_status}")
        current = order.get("status") or "pending"
        if new_status != current:
            if new_status not in ORDER_TRANSITIONS.get(current, set()):
                raise ConflictError(f"Transition interdite: {current} -> {new_status}")
            changes["status"] = new_status
    if "tracking_number" in data:
        changes["tracking_number"] = optional_text("tracking_number", data.get("tracking_number"))

    if not changes:
        return order
    changes["updated_at"] = _now()
    updated = repository.update_order(order_id, changes)
    logger.info("orders.admin_update order_id=%s changes=%s", order_id, sorted(changes))
    return updated or {**order, **changes}
