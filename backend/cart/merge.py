"""
Fusion du panier invité dans le panier serveur, déclenchée uniquement sur la transition
« non authentifié -> authentifié » (réponse de connexion / inscription avec session),
jamais sur une simple relecture de l'identité (/auth/me, requêtes authentifiées).
Garantie « au plus une fois »: chaque ligne est retirée de l'état invité avant d'être
rejouée via add, un second déclenchement ne trouve donc plus rien à rejouer.
"""
from typing import Any, MutableMapping
import logging

from backend.utils.errors import NotFoundError, InvalidInputError
from .backends import GuestCart
from . import service as cart_service

logger = logging.getLogger(__name__)

def merge_guest_cart(session: MutableMapping[str, Any], user_id: str) -> int:
    """
    Rejoue les lignes du panier invité dans le Cart Store de user_id puis vide l'état invité.
    Retourne le nombre de lignes fusionnées.
    - Produits disparus du catalogue: ignorés (warning).
    - Erreur inattendue: propagée; les lignes déjà fusionnées ne seront pas rejouées.
    """
    if not user_id:
        return 0

    guest = GuestCart(session)
    merged = 0
    while True:
        line = guest.pop_first()
        if line is None:
            break
        try:
            cart_service.add(user_id, line["product_id"], line["quantity"])
            merged += 1
        except (NotFoundError, InvalidInputError):
            logger.warning("cart.merge ligne ignorée user_id=%s product_id=%s", user_id, line["product_id"])
    guest.clear()
    if merged:
        logger.info("cart.merge user_id=%s lignes=%s", user_id, merged)
    return merged
