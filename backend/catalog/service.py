"""
Catalog Reader: lecture groupée des produits et règles de prix.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from backend.utils.errors import NotFoundError
from backend.utils.validators import is_uuid
from . import repository

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Retourne un dict {id: produit} à partir d'une liste d'IDs (une seule requête).
    Les IDs mal formés sont écartés avant la requête (aucun produit ne peut y correspondre).
    """
    unique_ids = list(dict.fromkeys(str(i).strip() for i in ids if i and is_uuid(i)))
    products = repository.fetch_products_by_ids(unique_ids)
    return {str(p.get("id")): p for p in products}

def require_products(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Comme get_products_map, mais échoue si un seul ID est inconnu (pas de succès partiel).
    - NotFoundError nomme le premier identifiant manquant.
    """
    wanted = list(dict.fromkeys(str(i).strip() for i in ids if i))
    products = get_products_map(wanted)
    for product_id in wanted:
        if product_id not in products:
            raise NotFoundError(f"Produit introuvable: {product_id}")
    return products

def get_product(product_id: str) -> Optional[Dict[str, Any]]:
    return get_products_map([product_id]).get(str(product_id))

def get_service(service_id: str) -> Optional[Dict[str, Any]]:
    if not is_uuid(service_id):
        return None
    return repository.fetch_service_by_id(str(service_id).strip())

def unit_price(product: Dict[str, Any]) -> Decimal:
    """
    Prix unitaire effectif: sale_price s'il est renseigné (et > 0), sinon price.
    """
    for field in ("sale_price", "price"):
        raw = product.get(field)
        if raw in (None, ""):
            continue
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            continue
        if value > 0:
            return value
    return Decimal("0")

def to_minor_units(amount: Decimal) -> int:
    """Convertit un montant décimal en centimes (arrondi au plus proche, demi vers le haut)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def from_minor_units(amount: int) -> float:
    return float(Decimal(int(amount)) / 100)

def first_image(product: Dict[str, Any]) -> Optional[str]:
    images = product.get("images") or []
    return images[0] if images else None

def normalize_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Forme publique d'un produit pour hydrater un panier côté client."""
    return {
        "id": str(product.get("id") or ""),
        "name": product.get("name") or "",
        "brand": product.get("brand") or "",
        "price": float(product.get("price") or 0),
        "sale_price": float(product["sale_price"]) if product.get("sale_price") not in (None, "") else None,
        "image": first_image(product),
        "in_stock": bool(product.get("in_stock", True)),
    }

def lookup_products(ids: List[str]) -> List[Dict[str, Any]]:
    products = get_products_map(ids)
    return [normalize_product(p) for p in products.values()]

def list_services(category: Optional[str] = None) -> List[Dict[str, Any]]:
    return repository.list_services((category or "").strip() or None)
