"""Endpoints du panier, un seul jeu de routes sur l'interface CartBackend.
- /api/v1/cart: panier serveur, authentification obligatoire (401 sinon).
- /api/v1/guest-cart: panier choisi par cart_for() selon l'état d'authentification;
  un invité écrit dans le cookie de session signé, un utilisateur connecté dans son panier serveur.
Toutes les réponses utilisent l'enveloppe {success, data?, error?}.
"""
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from backend.utils.security import get_optional_user, require_user
from backend.utils.responses import ok
from .backends import CartBackend, cart_for


class AddItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(default=None, alias="productId")
    quantity: int = 1


class QuantityRequest(BaseModel):
    quantity: int


def authenticated_cart(request: Request, user: Dict[str, Any] = Depends(require_user)) -> CartBackend:
    return cart_for(request.session, user)

def session_cart(request: Request, user: Optional[Dict[str, Any]] = Depends(get_optional_user)) -> CartBackend:
    return cart_for(request.session, user)

def _cart_routes(router: APIRouter, resolve_cart: Callable[..., CartBackend]) -> APIRouter:
    @router.get("")
    def get_cart(cart: CartBackend = Depends(resolve_cart)):
        return ok(cart.get())

    @router.post("")
    def add_to_cart(req: AddItemRequest, cart: CartBackend = Depends(resolve_cart)):
        """Ajoute un produit (incrémente la ligne si elle existe déjà).
        - 400 si productId manquant ou quantity < 1
        - 404 si le produit est inconnu
        """
        return ok(cart.add(req.product_id, req.quantity), message="Produit ajouté au panier")

    @router.patch("/{product_id}")
    def update_cart_item(product_id: str, req: QuantityRequest, cart: CartBackend = Depends(resolve_cart)):
        return ok(cart.set_quantity(product_id, req.quantity))

    @router.delete("/{product_id}")
    def remove_cart_item(product_id: str, cart: CartBackend = Depends(resolve_cart)):
        # Produit absent = succès (idempotent); 404 seulement sans panier serveur
        return ok(cart.remove(product_id))

    @router.delete("")
    def clear_cart(cart: CartBackend = Depends(resolve_cart)):
        cart.clear()
        return ok(message="Panier vidé")

    return router


router = _cart_routes(APIRouter(prefix="/api/v1/cart", tags=["Cart API"]), authenticated_cart)
guest_router = _cart_routes(APIRouter(prefix="/api/v1/guest-cart", tags=["Cart API"]), session_cart)
