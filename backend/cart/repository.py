"""
Accès aux données du panier serveur (tables carts / cart_items).
- carts: une ligne par utilisateur (user_id unique), créée à la demande.
- cart_items: clé primaire (user_id, product_id), quantity >= 1.
- L'ajout passe par la fonction SQL cart_add_item (incrément ou insertion en une instruction),
  ce qui évite la perte de mise à jour d'un lire-modifier-écrire concurrent.
"""
from typing import Any, Dict, List
import logging
import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ITEM_FIELDS = "product_id, quantity, products(id, name, brand, price, sale_price, images, in_stock)"

# module backend.cart.repository
def ensure_cart(user_id: str) -> None:
    """Crée la ligne carts de l'utilisateur si absente (upsert idempotent)."""
    (
        supabase_client.get_service_supabase()
        .table("carts")
        .upsert({"user_id": user_id}, on_conflict="user_id", ignore_duplicates=True)
        .execute()
    )

def cart_exists(user_id: str) -> bool:
    res = (
        supabase_client.get_service_supabase()
        .table("carts")
        .select("user_id")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    return bool(res.data)

def list_cart_items(user_id: str) -> List[Dict[str, Any]]:
    """Lignes du panier avec la jointure produits (détails à jour)."""
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .select(ITEM_FIELDS)
        .eq("user_id", user_id)
        .order("created_at", desc=False)
        .execute()
    )
    return res.data or []

def add_cart_item(user_id: str, product_id: str, quantity: int) -> None:
    """Incrémente la ligne existante ou l'insère (fonction SQL atomique)."""
    (
        supabase_client.get_service_supabase()
        .rpc("cart_add_item", {"p_user_id": user_id, "p_product_id": product_id, "p_quantity": quantity})
        .execute()
    )

def set_cart_item_quantity(user_id: str, product_id: str, quantity: int) -> List[Dict[str, Any]]:
    """Fixe la quantité d'une ligne; retourne les lignes modifiées ([] si la ligne n'existe pas)."""
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .update({"quantity": quantity})
        .eq("user_id", user_id)
        .eq("product_id", product_id)
        .execute()
    )
    return res.data or []

def delete_cart_item(user_id: str, product_id: str) -> None:
    (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .delete()
        .eq("user_id", user_id)
        .eq("product_id", product_id)
        .execute()
    )

def clear_cart_items(user_id: str) -> None:
    (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .delete()
        .eq("user_id", user_id)
        .execute()
    )
