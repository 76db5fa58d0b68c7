"""
Cart Store: cas d'usage du panier serveur (utilisateur authentifié).
- get: crée le panier vide à la première lecture.
- add: vérifie le produit au catalogue puis incrémente/insère la ligne.
- remove: idempotent (produit absent = succès), 404 si l'utilisateur n'a aucun panier.
- set_quantity: quantité >= 1, 404 si la ligne est absente.
- clear: vide inconditionnellement.
"""
from typing import Any, Dict, List
import logging

from backend.catalog import service as catalog_service
from backend.utils.errors import InvalidInputError, NotFoundError
from backend.utils.validators import is_uuid
from . import repository

logger = logging.getLogger(__name__)

def _serialize_items(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for row in rows:
        product = row.get("products")
        items.append({
            "product_id": str(row.get("product_id") or ""),
            "quantity": int(row.get("quantity") or 0),
            "product": catalog_service.normalize_product(product) if product else None,
        })
    return items

def _cart_payload(user_id: str) -> Dict[str, Any]:
    items = _serialize_items(repository.list_cart_items(user_id))
    return {
        "user_id": user_id,
        "items": items,
        "item_count": sum(i["quantity"] for i in items),
    }

def _validate_quantity(quantity: Any) -> int:
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise InvalidInputError("Quantité invalide")
    if qty < 1:
        raise InvalidInputError("Quantité invalide")
    return qty

def get(user_id: str) -> Dict[str, Any]:
    repository.ensure_cart(user_id)
    return _cart_payload(user_id)

def add(user_id: str, product_id: str, quantity: int = 1) -> Dict[str, Any]:
    product_id = str(product_id or "").strip()
    if not product_id:
        raise InvalidInputError("productId requis")
    qty = _validate_quantity(quantity)
    if not catalog_service.get_product(product_id):
        raise NotFoundError("Produit introuvable")
    repository.ensure_cart(user_id)
    repository.add_cart_item(user_id, product_id, qty)
    logger.info("cart.add user_id=%s product_id=%s quantity=%s", user_id, product_id, qty)
    return _cart_payload(user_id)

def remove(user_id: str, product_id: str) -> Dict[str, Any]:
    if not repository.cart_exists(user_id):
        raise NotFoundError("Panier introuvable")
    # ID mal formé: aucune ligne ne peut correspondre, suppression sans effet
    if is_uuid(product_id):
        repository.delete_cart_item(user_id, str(product_id).strip())
    return _cart_payload(user_id)

def set_quantity(user_id: str, product_id: str, quantity: int) -> Dict[str, Any]:
    qty = _validate_quantity(quantity)
    if not repository.cart_exists(user_id):
        raise NotFoundError("Panier introuvable")
    updated = repository.set_cart_item_quantity(user_id, str(product_id).strip(), qty) if is_uuid(product_id) else []
    if not updated:
        raise NotFoundError("Article absent du panier")
    return _cart_payload(user_id)

def clear(user_id: str) -> None:
    repository.clear_cart_items(user_id)

def checkout_items(user_id: str) -> List[Dict[str, Any]]:
    """Contenu du panier sous forme [{product_id, quantity}] pour le Checkout Session Builder."""
    rows = repository.list_cart_items(user_id)
    return [
        {"product_id": str(r.get("product_id")), "quantity": int(r.get("quantity") or 0)}
        for r in rows
    ]
