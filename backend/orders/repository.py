"""
Accès aux données des commandes (table orders).
- stripe_session_id est unique: une commande au plus par session de paiement.
- Les écritures passent par le client service-role; les erreurs PostgREST sont propagées
  (le reconciler traite explicitement la violation d'unicité).
"""
from typing import Any, Dict, List, Optional, Tuple
import logging
import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ORDER_FIELDS = (
    "id, user_id, guest_email, guest_name, items, total, payment_method, payment_status, "
    "status, stripe_session_id, shipping_address, tracking_number, paid_at, created_at, updated_at"
)

# module backend.orders.repository
def get_order_by_session_id(session_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select(ORDER_FIELDS)
        .eq("stripe_session_id", session_id)
        .limit(1)
        .execute()
    )
    return res.data[0] if res.data else None

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select(ORDER_FIELDS)
        .eq("id", order_id)
        .limit(1)
        .execute()
    )
    return res.data[0] if res.data else None

def insert_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère la commande et retourne la ligne créée (APIError 23505 si la session a déjà sa commande)."""
    res = supabase_client.get_service_supabase().table("orders").insert(row).execute()
    return res.data[0] if res.data else row

def list_user_orders(user_id: str, limit: int, offset: int) -> Tuple[List[Dict[str, Any]], int]:
    """Commandes d'un utilisateur, plus récentes d'abord; retourne (lignes, total)."""
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select(ORDER_FIELDS, count="exact")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    rows = res.data or []
    total = res.count if getattr(res, "count", None) is not None else len(rows)
    return rows, int(total)

def list_all_orders(limit: int, offset: int, status: Optional[str] = None) -> Tuple[List[Dict[str, Any]], int]:
    """Toutes les commandes (admin), filtre optionnel sur le statut."""
    query = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select(ORDER_FIELDS, count="exact")
    )
    if status:
        query = query.eq("status", status)
    res = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    rows = res.data or []
    total = res.count if getattr(res, "count", None) is not None else len(rows)
    return rows, int(total)

def update_order(order_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .update(changes)
        .eq("id", order_id)
        .execute()
    )
    return res.data[0] if res.data else None
