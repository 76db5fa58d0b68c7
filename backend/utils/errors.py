"""
Taxonomie d'erreurs applicatives.
Chaque classe est une HTTPException: les services lèvent directement l'erreur métier,
le handler global (app_setup.exceptions) la rend dans l'enveloppe {success, error}.
"""
from typing import Optional
from fastapi import HTTPException


class AppError(HTTPException):
    status_code = 500
    code = "INTERNAL"
    default_detail = "Erreur interne"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class InvalidInputError(AppError):
    status_code = 400
    code = "INVALID_INPUT"
    default_detail = "Requête invalide"


class AuthError(AppError):
    status_code = 401
    code = "AUTH"
    default_detail = "Non authentifié"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_detail = "Accès interdit"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_detail = "Ressource introuvable"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_detail = "Conflit"


class SlotTakenError(AppError):
    # Le formulaire de réservation attend un 400 (et non un 409)
    status_code = 400
    code = "SLOT_TAKEN"
    default_detail = "Ce créneau est déjà réservé"


class PaymentIncompleteError(AppError):
    status_code = 400
    code = "PAYMENT_INCOMPLETE"
    default_detail = "Paiement non confirmé"


class InvalidStateError(AppError):
    status_code = 400
    code = "INVALID_STATE"
    default_detail = "Session de paiement invalide"


class UpstreamError(AppError):
    status_code = 502
    code = "UPSTREAM_FAILURE"
    default_detail = "Service de paiement indisponible"
