"""API JSON d'administration (rôle admin requis, 403 sinon).
- Commandes: liste paginée, PATCH {status, trackingNumber} selon la machine d'états.
- Réservations: liste (filtres status/date), lecture, PATCH {status, stylist, notes, date, time}, suppression.
Les champs hors liste (ex: paymentStatus, total) sont refusés avec 400 (extra="forbid").
"""
import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from backend.utils.security import require_admin
from backend.utils.responses import ok
from backend.admin import service as admin_service

router = APIRouter(prefix="/api/v1/admin", tags=["Admin API"], dependencies=[Depends(require_admin)])


class AdminOrderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    status: Optional[str] = None
    tracking_number: Optional[str] = Field(default=None, alias="trackingNumber")


class AdminBookingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[str] = None
    stylist: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime.date] = None
    time: Optional[str] = None


# module backend.admin.views
@router.get("/orders")
def admin_list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
):
    return ok(admin_service.list_orders(page=page, limit=limit, status=status))

@router.patch("/orders/{order_id}")
def admin_update_order(order_id: str, data: AdminOrderUpdate):
    # Seuls les champs envoyés sont appliqués (trackingNumber: null efface le suivi)
    return ok(admin_service.update_order(order_id, data.model_dump(exclude_unset=True)), message="Commande mise à jour")

@router.get("/bookings")
def admin_list_bookings(status: Optional[str] = None, date: Optional[str] = None):
    return ok(admin_service.list_bookings(status=status, date=date))

@router.get("/bookings/{booking_id}")
def admin_get_booking(booking_id: str):
    return ok(admin_service.get_booking(booking_id))

@router.patch("/bookings/{booking_id}")
def admin_update_booking(booking_id: str, data: AdminBookingUpdate):
    return ok(admin_service.update_booking(booking_id, data.model_dump(exclude_unset=True)), message="Réservation mise à jour")

@router.delete("/bookings/{booking_id}")
def admin_delete_booking(booking_id: str):
    admin_service.delete_booking(booking_id)
    return ok(message="Réservation supprimée")
