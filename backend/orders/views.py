from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from backend.utils.security import require_user
from backend.utils.responses import ok
from . import service as orders_service

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

# module backend.orders.views
@router.get("")
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: Dict[str, Any] = Depends(require_user),
):
    """Commandes de l'utilisateur connecté, plus récentes d'abord, paginées."""
    return ok(orders_service.list_user_orders(user["id"], page=page, limit=limit))
