"""
Sérialisation/désérialisation des métadonnées Stripe de la session de checkout.
Stripe n'accepte que des paires clé -> chaîne (500 caractères max par valeur, 50 clés max):
- cart_items: JSON [[product_id, quantity, unit_amount], ...] (prix figé au moment du checkout)
- guest_email / guest_name / user_id: identité de l'acheteur
- shipping_address: JSON de l'adresse de livraison
Une valeur trop longue est découpée sur des clés numérotées (<clé>_0, <clé>_1, ...) et
<clé>_parts indique le nombre de morceaux.
"""
import json
from typing import Any, Dict, List, Optional

from backend.utils.errors import InvalidInputError, InvalidStateError

MAX_VALUE_LENGTH = 500
MAX_KEYS = 50

# module backend.payments.metadata
def _put(meta: Dict[str, str], key: str, value: str) -> None:
    if len(value) <= MAX_VALUE_LENGTH:
        meta[key] = value
        return
    parts = [value[i:i + MAX_VALUE_LENGTH] for i in range(0, len(value), MAX_VALUE_LENGTH)]
    meta[f"{key}_parts"] = str(len(parts))
    for index, part in enumerate(parts):
        meta[f"{key}_{index}"] = part

def _get(meta: Dict[str, Any], key: str) -> Optional[str]:
    if meta.get(key) is not None:
        return str(meta[key])
    count = meta.get(f"{key}_parts")
    if count is None:
        return None
    try:
        total = int(count)
    except (TypeError, ValueError):
        return None
    chunks = []
    for index in range(total):
        part = meta.get(f"{key}_{index}")
        if part is None:
            return None
        chunks.append(str(part))
    return "".join(chunks)

def encode_metadata(
    lines: List[Dict[str, Any]],
    *,
    user_id: Optional[str] = None,
    guest_email: Optional[str] = None,
    guest_name: Optional[str] = None,
    shipping_address: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """
    Construit les métadonnées suffisantes pour reconstruire la commande après paiement.
    - lines: [{product_id, quantity, unit_amount}]
    - Soulève InvalidInputError si le panier dépasse la capacité des métadonnées Stripe.
    """
    meta: Dict[str, str] = {}
    compact = [[l["product_id"], int(l["quantity"]), int(l["unit_amount"])] for l in lines]
    _put(meta, "cart_items", json.dumps(compact, separators=(",", ":")))
    if guest_email:
        meta["guest_email"] = guest_email
    if guest_name:
        meta["guest_name"] = guest_name[:MAX_VALUE_LENGTH]
    if user_id:
        meta["user_id"] = str(user_id)
    if shipping_address:
        _put(meta, "shipping_address", json.dumps(shipping_address, separators=(",", ":")))
    if len(meta) > MAX_KEYS:
        raise InvalidInputError("Panier trop volumineux")
    return meta

def decode_items(meta: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Relit les lignes figées au checkout: [{product_id, quantity, unit_amount}].
    Soulève InvalidStateError si la donnée est absente, vide ou corrompue.
    """
    raw = _get(meta or {}, "cart_items")
    if not raw:
        raise InvalidStateError("Panier introuvable dans la session de paiement")
    try:
        rows = json.loads(raw)
        items = [
            {"product_id": str(pid), "quantity": int(qty), "unit_amount": int(amount)}
            for pid, qty, amount in rows
        ]
    except (ValueError, TypeError):
        raise InvalidStateError("Panier corrompu dans la session de paiement")
    if not items or any(i["quantity"] < 1 or not i["product_id"] for i in items):
        raise InvalidStateError("Panier vide dans la session de paiement")
    return items

def decode_shipping_address(meta: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Adresse de livraison (None si absente ou illisible)."""
    raw = _get(meta or {}, "shipping_address")
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None

def extract_identity(meta: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    meta = meta or {}
    return {
        "user_id": meta.get("user_id") or None,
        "guest_email": meta.get("guest_email") or None,
        "guest_name": meta.get("guest_name") or None,
    }
