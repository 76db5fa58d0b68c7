"""Validation des valeurs reçues avant d'atteindre Supabase."""
from typing import Any, Optional
import uuid

from backend.utils.errors import InvalidInputError

def is_uuid(value: Any) -> bool:
    """
    Les tables Supabase ont des clés uuid: un identifiant mal formé ne désigne aucune ligne
    (PostgREST répondrait par une erreur 22P02), on le traite donc comme « introuvable ».
    """
    try:
        uuid.UUID(str(value or "").strip())
    except ValueError:
        return False
    return True

def optional_text(field: str, value: Any) -> Optional[str]:
    # Chaîne vide -> None (effacement du champ)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"{field}: texte attendu")
    return value.strip() or None
