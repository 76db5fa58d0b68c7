from fastapi import Request, Depends
from fastapi.responses import Response
from typing import Optional, Dict, Any
from backend.config import COOKIE_SECURE
from backend.utils.errors import AuthError, ForbiddenError

COOKIE_NAME = "sb_access"

def determine_role(metadata: Dict[str, Any] | None) -> str:
    """Rôle applicatif dérivé de user_metadata.role: 'admin' ou 'user'."""
    if str((metadata or {}).get("role", "")).lower() == "admin":
        return "admin"
    return "user"

def set_session_cookie(response: Response, access_token: str):
    response.set_cookie(
        key=COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="Lax",
        max_age=60 * 60,
        path="/",
    )

def clear_session_cookie(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise AuthError("Non authentifié")

    try:
        # Délégué au service Auth
        from backend.auth.service import get_user_from_token as _svc_get_user_from_token
        user = _svc_get_user_from_token(token)
    except Exception:
        raise AuthError("Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise AuthError("Session expirée, veuillez vous connecter")
    return user

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Identité optionnelle (checkout invité, réservation):
    - None si aucun token n'est présent
    - None si le token est invalide/expiré (le client est traité comme invité)
    """
    if not _token_from_request(request):
        return None
    try:
        return get_current_user(request)
    except AuthError:
        return None

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise ForbiddenError("Accès administrateur requis")
    return user
