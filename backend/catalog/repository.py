"""
Accès en lecture au catalogue (tables products et salon_services).
Le catalogue est la source de vérité des prix au moment du checkout.
"""
from typing import Any, Dict, List, Optional
import logging
import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = "id, name, brand, price, sale_price, images, in_stock"
SERVICE_FIELDS = "id, name, category, description, price, duration"

# module backend.catalog.repository
def fetch_products_by_ids(ids: List[str]) -> List[Dict[str, Any]]:
    """
    Récupère les produits par leurs IDs en une seule requête (in_).
    - Retourne [] si ids est vide.
    """
    if not ids:
        return []
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select(PRODUCT_FIELDS)
        .in_("id", [str(i) for i in ids])
        .execute()
    )
    return res.data or []

def fetch_service_by_id(service_id: str) -> Optional[Dict[str, Any]]:
    """Récupère une prestation salon (prix, durée) ou None si absente."""
    res = (
        supabase_client.get_supabase()
        .table("salon_services")
        .select(SERVICE_FIELDS)
        .eq("id", service_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def list_services(category: Optional[str] = None) -> List[Dict[str, Any]]:
    """Prestations salon triées par nom (filtre de catégorie optionnel)."""
    query = supabase_client.get_supabase().table("salon_services").select(SERVICE_FIELDS)
    if category:
        query = query.eq("category", category)
    res = query.order("name").execute()
    return res.data or []
