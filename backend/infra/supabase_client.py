"""
Clients Supabase partagés (PostgREST + Auth).
- get_supabase: client 'anon' (lecture catalogue, Auth).
- get_service_supabase: client service-role pour les écritures serveur (paniers, commandes, réservations).
Les instances sont créées à la première utilisation pour ne pas exiger de configuration à l'import.
"""
from typing import Optional
from postgrest.exceptions import APIError
from supabase import create_client, Client
from backend.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

UNIQUE_VIOLATION = "23505"

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def is_unique_violation(exc: Exception) -> bool:
    """
    Vrai si l'erreur PostgREST correspond à une violation de contrainte unique (23505).
    - APIError expose .code; certaines versions ne gardent que le dict brut dans args[0].
    """
    if not isinstance(exc, APIError):
        return False
    code = getattr(exc, "code", None)
    if not code and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code or "") == UNIQUE_VIOLATION
