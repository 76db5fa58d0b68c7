"""
Réservations salon: un créneau (date, time) n'accepte qu'une réservation active.
La vérification préalable donne un message clair; l'index unique partiel ferme la course
entre deux demandes simultanées (violation -> SlotTakenError).
"""
from datetime import date as date_type, datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import re

from fastapi import BackgroundTasks
from postgrest.exceptions import APIError

from backend.catalog import service as catalog_service
from backend.infra.supabase_client import is_unique_violation
from backend.notifications import service as notifications
from backend.utils.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    SlotTakenError,
)
from backend.utils.validators import is_uuid, optional_text
from . import repository

logger = logging.getLogger(__name__)

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}
ADMIN_WRITABLE_FIELDS = {"status", "stylist", "notes", "date", "time"}
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def normalize_date(value: Any) -> str:
    if isinstance(value, date_type):
        return value.isoformat()
    try:
        return date_type.fromisoformat(str(value or "").strip()[:10]).isoformat()
    except ValueError:
        raise InvalidInputError("Date invalide (AAAA-MM-JJ attendu)")

def normalize_time(value: Any) -> str:
    text = str(value or "").strip()
    if not TIME_RE.match(text):
        raise InvalidInputError("Heure invalide (HH:MM attendu)")
    return text

def create_booking(
    service_id: str,
    date: Any,
    time: Any,
    customer_name: str,
    customer_email: str,
    customer_phone: str,
    notes: Optional[str] = None,
    user: Optional[Dict[str, Any]] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Dict[str, Any]:
    """
    Réserve un créneau.
    1) créneau déjà actif -> SlotTakenError
    2) prestation inconnue -> NotFoundError
    3) insertion 'pending' avec prix et durée figés depuis la prestation
    4) e-mail de confirmation en tâche de fond (échec absorbé)
    """
    day = normalize_date(date)
    slot = normalize_time(time)
    for label, value in (("customerName", customer_name), ("customerEmail", customer_email), ("customerPhone", customer_phone)):
        if not str(value or "").strip():
            raise InvalidInputError(f"{label} requis")

    if repository.find_active_booking(day, slot):
        raise SlotTakenError()

    service = catalog_service.get_service(service_id)
    if not service:
        raise NotFoundError("Prestation introuvable")

    row: Dict[str, Any] = {
        "service_id": str(service["id"]),
        "user_id": str(user["id"]) if user and user.get("id") else None,
        "date": day,
        "time": slot,
        "duration": int(service.get("duration") or 0),
        "customer_name": customer_name.strip(),
        "customer_email": customer_email.strip(),
        "customer_phone": customer_phone.strip(),
        "notes": (notes or "").strip() or None,
        "status": "pending",
        "total_price": float(service.get("price") or 0),
    }
    try:
        booking = repository.insert_booking(row)
    except APIError as e:
        if is_unique_violation(e):
            logger.info("salon.booking créneau pris en concurrence date=%s time=%s", day, slot)
            raise SlotTakenError()
        raise

    logger.info("salon.booking créée booking_id=%s date=%s time=%s", booking.get("id"), day, slot)
    notifications.dispatch(background_tasks, notifications.send_booking_confirmation, booking, service)
    return booking

def list_user_bookings(user_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    if status and status not in BOOKING_STATUSES:
        raise InvalidInputError(f"Statut inconnu: {status}")
    return repository.list_bookings(user_id=user_id, status=status)

def list_bookings(status: Optional[str] = None, date: Any = None) -> List[Dict[str, Any]]:
    if status and status not in BOOKING_STATUSES:
        raise InvalidInputError(f"Statut inconnu: {status}")
    return repository.list_bookings(status=status, date=normalize_date(date) if date else None)

def get_booking(booking_id: str) -> Dict[str, Any]:
    booking = repository.get_booking(booking_id) if is_uuid(booking_id) else None
    if not booking:
        raise NotFoundError("Réservation introuvable")
    return booking

def update_booking(booking_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mise à jour admin restreinte à {status, stylist, notes, date, time}.
    - Transition hors machine d'états -> ConflictError
    - Déplacement vers un créneau actif déjà pris -> SlotTakenError
    """
    forbidden = sorted(set(data) - ADMIN_WRITABLE_FIELDS)
    if forbidden:
        raise InvalidInputError(f"Champ non modifiable: {', '.join(forbidden)}")
    booking = get_booking(booking_id)

    changes: Dict[str, Any] = {}
    current = booking.get("status") or "pending"
    new_status = data.get("status")
    if new_status is not None:
        if new_status not in BOOKING_STATUSES:
            raise InvalidInputError(f"Statut inconnu: {new_status}")
        if new_status != current:
            if new_status not in BOOKING_TRANSITIONS.get(current, set()):
                raise ConflictError(f"Transition interdite: {current} -> {new_status}")
            changes["status"] = new_status
    for field in ("stylist", "notes"):
        if field in data:
            changes[field] = optional_text(field, data.get(field))
    if data.get("date") is not None:
        changes["date"] = normalize_date(data["date"])
    if data.get("time") is not None:
        changes["time"] = normalize_time(data["time"])

    if not changes:
        return booking

    day = changes.get("date", booking.get("date"))
    slot = changes.get("time", booking.get("time"))
    moved = day != booking.get("date") or slot != booking.get("time")
    if moved and changes.get("status", current) in repository.ACTIVE_STATUSES:
        if repository.find_active_booking(day, slot, exclude_id=booking_id):
            raise SlotTakenError()

    changes["updated_at"] = _now()
    try:
        updated = repository.update_booking(booking_id, changes)
    except APIError as e:
        if is_unique_violation(e):
            raise SlotTakenError()
        raise
    logger.info("salon.admin_update booking_id=%s changes=%s", booking_id, sorted(changes))
    return updated or {**booking, **changes}

def delete_booking(booking_id: str) -> None:
    if not is_uuid(booking_id) or not repository.delete_booking(booking_id):
        raise NotFoundError("Réservation introuvable")
    logger.info("salon.admin_delete booking_id=%s", booking_id)
