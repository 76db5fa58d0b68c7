from fastapi import APIRouter

from backend.utils.responses import ok
from . import service as catalog_service

router = APIRouter(prefix="/api/v1/products", tags=["Catalog API"])

# module backend.catalog.views
@router.get("/lookup")
def lookup_products(ids: str = ""):
    """
    Retourne les produits normalisés {id, name, brand, price, sale_price, image, in_stock}
    pour hydrater un panier invité.
    - Paramètre: ids séparés par des virgules.
    - Les IDs inconnus sont simplement absents de la réponse.
    """
    id_list = [i.strip() for i in (ids or "").split(",") if i.strip()]
    if not id_list:
        return ok([])
    return ok(catalog_service.lookup_products(id_list))
