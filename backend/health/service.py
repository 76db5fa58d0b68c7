from urllib.parse import urlparse
import logging
import socket
from backend.config import SUPABASE_URL
import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

HEALTH_TABLES = ["products", "salon_services"]

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info():
    """Diagnostic Supabase: résolution DNS de l'hôte puis lecture d'une ligne par table publique."""
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_supabase()
        for t in HEALTH_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    except Exception as e:
        logger.warning("health: client Supabase indisponible: %s", e)
        info["error"] = str(e)
    return info
