"""
Notification Dispatcher: e-mails de confirmation en « fire-and-forget ».
- dispatch() planifie l'envoi dans les BackgroundTasks FastAPI (après la réponse),
  ou l'exécute immédiatement hors requête (webhook sans tâches, scripts).
- Un échec d'envoi est journalisé puis absorbé: il ne fait jamais échouer l'opération appelante.
"""
from typing import Any, Callable, Dict, Optional
import logging

from fastapi import BackgroundTasks

from . import mailer

logger = logging.getLogger(__name__)

def _run_safely(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    try:
        fn(*args, **kwargs)
    except Exception:
        logger.exception("notifications: échec de %s", getattr(fn, "__name__", fn))

def dispatch(background_tasks: Optional[BackgroundTasks], fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    if background_tasks is None:
        _run_safely(fn, *args, **kwargs)
        return
    background_tasks.add_task(_run_safely, fn, *args, **kwargs)

def _money(amount: Any) -> str:
    return f"${float(amount or 0):.2f}"

def send_order_confirmation(order: Dict[str, Any], email: Optional[str], name: Optional[str] = None) -> bool:
    """Confirmation de commande (texte brut: récapitulatif des lignes et du total)."""
    lines = [
        f"- {item.get('name') or 'Article'} x{item.get('quantity')}: {_money(float(item.get('price') or 0) * int(item.get('quantity') or 0))}"
        for item in order.get("items") or []
    ]
    text = "\n".join([
        f"Bonjour {name or 'cher client'},",
        "",
        f"Merci pour votre commande n°{order.get('id')}.",
        *lines,
        "",
        f"Total: {_money(order.get('total'))}",
        "",
        "L'équipe Planet Beauty",
    ])
    return mailer.send_email(email or "", f"Confirmation de commande #{order.get('id')}", text)

def send_booking_confirmation(booking: Dict[str, Any], service: Dict[str, Any]) -> bool:
    """Confirmation de réservation salon (demande en attente de validation)."""
    text = "\n".join([
        f"Bonjour {booking.get('customer_name') or 'cher client'},",
        "",
        f"Votre demande de réservation pour « {service.get('name') or 'Prestation'} » est enregistrée.",
        f"Date: {booking.get('date')} à {booking.get('time')} ({booking.get('duration')} min)",
        f"Prix: {_money(booking.get('total_price'))}",
        "",
        "Nous vous confirmerons le rendez-vous rapidement.",
        "L'équipe Planet Beauty",
    ])
    return mailer.send_email(booking.get("customer_email") or "", "Votre réservation Planet Beauty", text)
