from typing import Optional, Dict, Any
from backend.auth.models import AuthResponse, USER_EXISTS, make_auth_response, handle_exception
from backend.utils.security import determine_role
from . import repository

# --- Cas d'usage Auth exposés ---

def login(email: str, password: str) -> AuthResponse:
    """Connexion:
    - Délègue à supabase.auth.sign_in_with_password via repository
    - Normalise la réponse en AuthResponse
    """
    try:
        res = repository.auth_sign_in_password((email or "").strip().lower(), password)
        return make_auth_response(res, fallback_error="Identifiants invalides ou email non confirmé")
    except Exception as e:
        # GoTrue lève AuthApiError pour des identifiants refusés: pas de distinction côté client
        if "invalid" in str(e).lower():
            return AuthResponse(False, error="Identifiants invalides")
        return handle_exception("sign_in", e)

def signup(name: str, email: str, password: str, phone: Optional[str] = None) -> AuthResponse:
    """Inscription:
    - name/phone stockés dans user_metadata (rôle 'user' par défaut)
    - Retourne une session si l'e-mail n'exige pas de confirmation, sinon un succès sans session
    - Traduit les erreurs « utilisateur existe déjà » en USER_EXISTS
    """
    options_data: Dict[str, Any] = {"name": name.strip()}
    if phone:
        options_data["phone"] = phone.strip()
    try:
        res = repository.auth_sign_up_account((email or "").strip().lower(), password, options_data)
    except Exception as e:
        msg = str(e).lower()
        if any(k in msg for k in ["already", "registered", "exists", "23505"]):
            return AuthResponse(False, error=USER_EXISTS)
        return handle_exception("sign_up", e)

    sess = getattr(res, "session", None)
    if sess and getattr(sess, "access_token", None):
        return make_auth_response(res)
    return AuthResponse(True, error="Inscription réussie, vérifiez votre email")

# --- Intégration sécurité ---

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise user issu de supabase.auth.get_user(access_token): {id, email, name, role}."""
    raw = repository.get_user_from_access_token(access_token)
    metadata = raw.get("user_metadata") or {}
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "name": metadata.get("name") or metadata.get("full_name"),
        "role": determine_role(metadata),
    }
