"""Endpoints d'identité (/api/v1/auth).
- login / signup: posent le cookie de session HTTP-only et fusionnent le panier invité
  (seule transition « invité -> authentifié » qui déclenche la fusion).
- logout: supprime le cookie de session.
- me: identité courante (n'entraîne jamais de fusion).
"""
from typing import Optional, Dict, Any
import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field

from backend.utils.security import require_user, set_session_cookie, clear_session_cookie
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.responses import ok
from backend.utils.errors import AuthError, ConflictError, InvalidInputError
from backend.cart.merge import merge_guest_cart
from .models import USER_EXISTS
from .service import login as svc_login, signup as svc_signup

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class SignupRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: Optional[str] = None

def _open_session(request: Request, response: Response, user: Dict[str, Any], access_token: str) -> Dict[str, Any]:
    """Pose le cookie puis fusionne le panier invité (best-effort: la connexion reste valide)."""
    set_session_cookie(response, access_token)
    merged = 0
    try:
        merged = merge_guest_cart(request.session, str(user.get("id") or ""))
    except Exception:
        logger.exception("auth: fusion du panier invité échouée user_id=%s", user.get("id"))
    return {"user": user, "access_token": access_token, "token_type": "bearer", "merged_items": merged}

@api_router.post("/login", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_login(req: LoginRequest, request: Request, response: Response):
    """Point d'entrée de connexion (API JSON).
    - Rate limit: 5 requêtes par 60 secondes.
    - 401 si les identifiants sont refusés.
    - Succès: cookie sb_access + fusion unique du panier invité dans le panier serveur.
    """
    result = svc_login(str(req.email), req.password)
    if not result.success:
        raise AuthError(result.error or "Identifiants invalides")
    data = _open_session(request, response, result.user or {}, result.access_token)
    return ok(data, message="Connexion réussie")

@api_router.post("/signup", status_code=201, dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_signup(req: SignupRequest, request: Request, response: Response):
    """Point d'entrée d'inscription (API JSON).
    - 409 si l'e-mail est déjà enregistré.
    - Avec session: même traitement que login. Sans session: message de confirmation d'e-mail.
    """
    result = svc_signup(req.name, str(req.email), req.password, req.phone)
    if not result.success:
        if result.error == USER_EXISTS:
            raise ConflictError(USER_EXISTS)
        raise InvalidInputError(result.error or "Inscription impossible")
    if not result.access_token:
        return ok(message=result.error or "Inscription réussie, vérifiez votre email")
    data = _open_session(request, response, result.user or {}, result.access_token)
    return ok(data, message="Inscription réussie")

@api_router.post("/logout")
def api_logout(response: Response):
    clear_session_cookie(response)
    return ok(message="Déconnexion réussie")

@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    return ok({k: user.get(k) for k in ("id", "email", "name", "role")})
