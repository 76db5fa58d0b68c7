"""Endpoints salon (réservations).
- POST /api/v1/salon/bookings: réservation invitée ou authentifiée (201).
- GET /api/v1/salon/bookings: réservations de l'utilisateur connecté.
- GET /api/v1/salon/services: prestations proposées (filtre category).
"""
import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.utils.security import get_optional_user, require_user
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.responses import ok
from backend.catalog import service as catalog_service
from . import service as salon_service

router = APIRouter(prefix="/api/v1/salon", tags=["Salon API"])


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(alias="service")
    date: datetime.date
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    customer_name: str = Field(alias="customerName", min_length=1)
    customer_email: EmailStr = Field(alias="customerEmail")
    customer_phone: str = Field(alias="customerPhone", min_length=1)
    notes: Optional[str] = None

# module backend.salon.views
@router.get("/services")
def list_services(category: Optional[str] = None):
    """Prestations proposées (public), pour le formulaire de réservation."""
    return ok(catalog_service.list_services(category))

@router.post("/bookings", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_booking(
    req: BookingRequest,
    background_tasks: BackgroundTasks,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """Réserve un créneau: 400 si déjà pris, 404 si la prestation est inconnue."""
    booking = salon_service.create_booking(
        req.service_id,
        req.date,
        req.time,
        req.customer_name,
        str(req.customer_email),
        req.customer_phone,
        notes=req.notes,
        user=user,
        background_tasks=background_tasks,
    )
    return ok(booking, message="Réservation enregistrée")

@router.get("/bookings")
def my_bookings(status: Optional[str] = None, user: Dict[str, Any] = Depends(require_user)):
    return ok(salon_service.list_user_bookings(user["id"], status=status))
