from typing import Any, Dict, Optional
from fastapi.encoders import jsonable_encoder

# module backend.utils.responses
def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Enveloppe de succès commune: {success: true, data?, message?}."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if message:
        body["message"] = message
    return body

def fail(error: str, message: Optional[str] = None, code: Optional[str] = None) -> Dict[str, Any]:
    """Enveloppe d'échec commune: {success: false, error, code?, message?}."""
    body: Dict[str, Any] = {"success": False, "error": error}
    if code:
        body["code"] = code
    if message:
        body["message"] = message
    return body
