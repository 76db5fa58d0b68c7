"""
Gestionnaires d'exceptions utilisés par la factory.
Toutes les erreurs sont rendues dans l'enveloppe {success: false, error, code?, message?}:
- HTTPException (dont la taxonomie AppError): statut et détail conservés
- RequestValidationError (corps/paramètres Pydantic): 400
- APIError PostgREST non traitée par un service: 502
- Toute autre exception: 500, journalisée avec la trace
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.utils.errors import AppError
from backend.utils.responses import fail

logger = logging.getLogger(__name__)

_DEFAULT_CODES = {
    400: "INVALID_INPUT",
    401: "AUTH",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors() or []
    if not errors:
        return "Requête invalide"
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg") or "valeur invalide"
    return f"{field}: {msg}" if field else msg

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_envelope(request: Request, exc: StarletteHTTPException):
        code = exc.code if isinstance(exc, AppError) else _DEFAULT_CODES.get(exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(str(exc.detail), code=code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_envelope(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=fail("Requête invalide", message=_validation_message(exc), code="INVALID_INPUT"),
        )

    @app.exception_handler(APIError)
    async def storage_envelope(request: Request, exc: APIError):
        logger.exception("Erreur stockage path=%s", request.url.path)
        return JSONResponse(status_code=502, content=fail("Erreur du service de données", code="UPSTREAM_FAILURE"))

    @app.exception_handler(Exception)
    async def internal_envelope(request: Request, exc: Exception):
        logger.exception("Erreur interne path=%s", request.url.path)
        return JSONResponse(status_code=500, content=fail("Erreur interne", code="INTERNAL"))
