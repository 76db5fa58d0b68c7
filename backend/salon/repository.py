"""
Accès aux données des réservations salon (table salon_bookings).
Un index unique partiel garantit au plus une réservation active (pending/confirmed)
par créneau (date, time); sa violation remonte en APIError 23505.
"""
from typing import Any, Dict, List, Optional
import logging
import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ["pending", "confirmed"]
BOOKING_FIELDS = (
    "id, service_id, user_id, date, time, duration, customer_name, customer_email, customer_phone, "
    "notes, stylist, status, total_price, created_at, updated_at, "
    "salon_services(id, name, category, duration, price)"
)

# module backend.salon.repository
def find_active_booking(date: str, time: str, exclude_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Réservation active (pending/confirmed) sur le créneau, en excluant éventuellement une réservation."""
    query = (
        supabase_client.get_service_supabase()
        .table("salon_bookings")
        .select("id, status")
        .eq("date", date)
        .eq("time", time)
        .in_("status", ACTIVE_STATUSES)
    )
    if exclude_id:
        query = query.neq("id", exclude_id)
    res = query.limit(1).execute()
    return res.data[0] if res.data else None

def insert_booking(row: Dict[str, Any]) -> Dict[str, Any]:
    res = supabase_client.get_service_supabase().table("salon_bookings").insert(row).execute()
    return res.data[0] if res.data else row

def list_bookings(
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    date: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    query = supabase_client.get_service_supabase().table("salon_bookings").select(BOOKING_FIELDS)
    if user_id:
        query = query.eq("user_id", user_id)
    if status:
        query = query.eq("status", status)
    if date:
        query = query.eq("date", date)
    res = query.order("date", desc=True).order("time", desc=True).limit(limit).execute()
    return res.data or []

def get_booking(booking_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("salon_bookings")
        .select(BOOKING_FIELDS)
        .eq("id", booking_id)
        .limit(1)
        .execute()
    )
    return res.data[0] if res.data else None

def update_booking(booking_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("salon_bookings")
        .update(changes)
        .eq("id", booking_id)
        .execute()
    )
    return res.data[0] if res.data else None

def delete_booking(booking_id: str) -> bool:
    res = (
        supabase_client.get_service_supabase()
        .table("salon_bookings")
        .delete()
        .eq("id", booking_id)
        .execute()
    )
    return bool(res.data)
