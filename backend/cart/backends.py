"""
Deux implémentations d'une même interface panier (get/add/remove/set_quantity/clear):
- GuestCart: état détenu par le client (cookie de session signé), pas d'accès base,
  pas de vérification catalogue (reportée au checkout), seulement le format uuid
  et un plafond de lignes (MAX_GUEST_LINES) pour rester sous la taille limite d'un cookie.
- UserCart: Cart Store serveur de l'utilisateur authentifié.
cart_for() choisit l'implémentation selon l'état d'authentification.
"""
from typing import Any, Dict, List, MutableMapping, Optional, Protocol

from backend.utils.errors import InvalidInputError, NotFoundError
from backend.utils.validators import is_uuid
from . import service as cart_service

GUEST_CART_KEY = "guest_cart"
MAX_GUEST_LINES = 20


class CartBackend(Protocol):
    def get(self) -> Dict[str, Any]: ...
    def add(self, product_id: str, quantity: int = 1) -> Dict[str, Any]: ...
    def remove(self, product_id: str) -> Dict[str, Any]: ...
    def set_quantity(self, product_id: str, quantity: int) -> Dict[str, Any]: ...
    def clear(self) -> None: ...


def _positive_int(value: Any) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError("Quantité invalide")
    if qty < 1:
        raise InvalidInputError("Quantité invalide")
    return qty


class GuestCart:
    """Panier invité stocké dans request.session (liste de {product_id, quantity})."""

    def __init__(self, session: MutableMapping[str, Any]):
        self.session = session

    def _lines(self) -> List[Dict[str, Any]]:
        lines = []
        for raw in self.session.get(GUEST_CART_KEY) or []:
            product_id = str((raw or {}).get("product_id") or "").strip()
            try:
                qty = int((raw or {}).get("quantity") or 0)
            except (TypeError, ValueError):
                continue
            if is_uuid(product_id) and qty >= 1:
                lines.append({"product_id": product_id, "quantity": qty})
        return lines

    def _save(self, lines: List[Dict[str, Any]]) -> None:
        if lines:
            self.session[GUEST_CART_KEY] = lines
        else:
            self.session.pop(GUEST_CART_KEY, None)

    def get(self) -> Dict[str, Any]:
        lines = self._lines()
        return {
            "user_id": None,
            "items": [dict(line, product=None) for line in lines],
            "item_count": sum(line["quantity"] for line in lines),
        }

    def add(self, product_id: str, quantity: int = 1) -> Dict[str, Any]:
        product_id = str(product_id or "").strip()
        if not product_id:
            raise InvalidInputError("productId requis")
        if not is_uuid(product_id):
            raise NotFoundError("Produit introuvable")
        qty = _positive_int(quantity)
        lines = self._lines()
        for line in lines:
            if line["product_id"] == product_id:
                line["quantity"] += qty
                break
        else:
            if len(lines) >= MAX_GUEST_LINES:
                raise InvalidInputError(f"Panier invité limité à {MAX_GUEST_LINES} articles différents")
            lines.append({"product_id": product_id, "quantity": qty})
        self._save(lines)
        return self.get()

    def remove(self, product_id: str) -> Dict[str, Any]:
        self._save([line for line in self._lines() if line["product_id"] != str(product_id)])
        return self.get()

    def set_quantity(self, product_id: str, quantity: int) -> Dict[str, Any]:
        qty = _positive_int(quantity)
        lines = self._lines()
        for line in lines:
            if line["product_id"] == str(product_id):
                line["quantity"] = qty
                self._save(lines)
                return self.get()
        raise NotFoundError("Article absent du panier")

    def clear(self) -> None:
        self.session.pop(GUEST_CART_KEY, None)

    def pop_first(self) -> Optional[Dict[str, Any]]:
        """Retire et renvoie la première ligne (utilisé par la fusion à la connexion)."""
        lines = self._lines()
        if not lines:
            return None
        first = lines.pop(0)
        self._save(lines)
        return first


class UserCart:
    """Panier serveur d'un utilisateur authentifié (délègue au Cart Store)."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    def get(self) -> Dict[str, Any]:
        return cart_service.get(self.user_id)

    def add(self, product_id: str, quantity: int = 1) -> Dict[str, Any]:
        return cart_service.add(self.user_id, product_id, quantity)

    def remove(self, product_id: str) -> Dict[str, Any]:
        return cart_service.remove(self.user_id, product_id)

    def set_quantity(self, product_id: str, quantity: int) -> Dict[str, Any]:
        return cart_service.set_quantity(self.user_id, product_id, quantity)

    def clear(self) -> None:
        cart_service.clear(self.user_id)


def cart_for(session: MutableMapping[str, Any], user: Optional[Dict[str, Any]]) -> CartBackend:
    if user and user.get("id"):
        return UserCart(str(user["id"]))
    return GuestCart(session)
