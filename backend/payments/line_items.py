"""
Logique panier pure pour le checkout (pas de Stripe, pas de DB).
- Agrégation des quantités, lignes tarifées depuis le catalogue, line_items Stripe.
"""
from typing import Any, Dict, List

from backend.catalog import service as catalog_service
from backend.utils.errors import InvalidInputError

# module backend.payments.line_items
def aggregate_quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Agrège une liste brute [{productId|product_id, quantity}, ...] en {product_id: total_quantity}.
    - L'ordre de première apparition est conservé.
    - Soulève InvalidInputError si la liste est vide, si une ligne n'a pas de productId
      ou si une quantité n'est pas un entier >= 1 (pas de correction silencieuse).
    """
    if not items:
        raise InvalidInputError("Panier vide")
    quantities: Dict[str, int] = {}
    for it in items:
        it = it or {}
        product_id = str(it.get("productId") or it.get("product_id") or "").strip()
        if not product_id:
            raise InvalidInputError("productId requis")
        try:
            qty = int(it.get("quantity") if it.get("quantity") is not None else 1)
        except (TypeError, ValueError):
            raise InvalidInputError("Quantité invalide")
        if qty < 1:
            raise InvalidInputError("Quantité invalide")
        quantities[product_id] = quantities.get(product_id, 0) + qty
    return quantities

def priced_lines(products_by_id: Dict[str, Dict[str, Any]], quantities: Dict[str, int]) -> List[Dict[str, Any]]:
    """
    Associe à chaque ligne le prix unitaire courant du catalogue (en centimes).
    Retour: [{product_id, quantity, unit_amount, product}]
    """
    lines: List[Dict[str, Any]] = []
    for product_id, qty in quantities.items():
        product = products_by_id[product_id]
        unit_amount = catalog_service.to_minor_units(catalog_service.unit_price(product))
        if unit_amount <= 0:
            raise InvalidInputError(f"Prix invalide pour le produit {product_id}")
        lines.append({
            "product_id": product_id,
            "quantity": qty,
            "unit_amount": unit_amount,
            "product": product,
        })
    return lines

def to_line_items(lines: List[Dict[str, Any]], currency: str) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) à partir des lignes tarifées.
    - product_data: nom, marque en description, première image.
    """
    line_items: List[Dict[str, Any]] = []
    for line in lines:
        product = line["product"]
        product_data: Dict[str, Any] = {"name": product.get("name") or "Article"}
        if product.get("brand"):
            product_data["description"] = product["brand"]
        image = catalog_service.first_image(product)
        product_data["images"] = [image] if image else []
        line_items.append({
            "quantity": line["quantity"],
            "price_data": {
                "currency": currency,
                "unit_amount": line["unit_amount"],
                "product_data": product_data,
            },
        })
    return line_items

def total_minor_units(lines: List[Dict[str, Any]]) -> int:
    return sum(int(line["unit_amount"]) * int(line["quantity"]) for line in lines)
