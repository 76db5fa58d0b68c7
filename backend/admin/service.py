# module backend.admin.service
"""Façade admin: délègue aux services commandes et salon (source unique des règles)."""
from typing import Any, Dict, List, Optional

from backend.orders import service as orders_service
from backend.salon import service as salon_service

def list_orders(page: int = 1, limit: int = 20, status: Optional[str] = None) -> Dict[str, Any]:
    return orders_service.list_all_orders(page=page, limit=limit, status=status)

def update_order(order_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return orders_service.update_order(order_id, data)

def list_bookings(status: Optional[str] = None, date: Optional[str] = None) -> List[Dict[str, Any]]:
    return salon_service.list_bookings(status=status, date=date)

def get_booking(booking_id: str) -> Dict[str, Any]:
    return salon_service.get_booking(booking_id)

def update_booking(booking_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return salon_service.update_booking(booking_id, data)

def delete_booking(booking_id: str) -> None:
    salon_service.delete_booking(booking_id)
