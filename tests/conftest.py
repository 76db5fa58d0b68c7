import os

# Avant l'import de l'app: pas de Redis en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import itertools
import uuid
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from backend.app import app as fastapi_app

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


USERS = {
    "user-token": {"id": "user-1", "email": "alice@example.com", "name": "Alice", "role": "user"},
    "other-token": {"id": "user-2", "email": "bob@example.com", "name": "Bob", "role": "user"},
    "admin-token": {"id": "admin-1", "email": "admin@example.com", "name": "Admin", "role": "admin"},
}


def unique_violation() -> APIError:
    return APIError({"code": "23505", "message": "duplicate key value violates unique constraint", "details": None, "hint": None})


def invalid_uuid(value) -> APIError:
    return APIError({"code": "22P02", "message": f'invalid input syntax for type uuid: "{value}"', "details": None, "hint": None})


def uuid_column(value) -> str:
    """Comme PostgREST sur une colonne uuid: 22P02 pour une valeur mal formée."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        raise invalid_uuid(value)
    return str(value)


class FakeStore:
    """Tables Supabase en mémoire, branchées à la place des fonctions repository."""

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.services: Dict[str, Dict[str, Any]] = {}
        self.carts: set = set()
        self.cart_items: Dict[str, Dict[str, int]] = {}
        self.orders: List[Dict[str, Any]] = []
        self.bookings: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _stamp(self) -> str:
        return f"2026-01-01T00:00:{next(self._clock):02d}+00:00"

    # --- catalogue ---
    def add_product(self, product_id: str, name: str, price: float, sale_price: Optional[float] = None, **extra):
        self.products[product_id] = {
            "id": product_id,
            "name": name,
            "brand": extra.get("brand", "Marque"),
            "price": price,
            "sale_price": sale_price,
            "images": extra.get("images", [f"https://img.example/{product_id}.jpg"]),
            "in_stock": True,
        }
        return self.products[product_id]

    def add_service(self, service_id: str, name: str, price: float, duration: int):
        self.services[service_id] = {"id": service_id, "name": name, "category": "hair", "price": price, "duration": duration}
        return self.services[service_id]

    def fetch_products_by_ids(self, ids):
        ids = [uuid_column(i) for i in ids]
        return [dict(self.products[i]) for i in ids if i in self.products]

    def fetch_service_by_id(self, service_id):
        uuid_column(service_id)
        row = self.services.get(service_id)
        return dict(row) if row else None

    def list_services(self, category=None):
        rows = [dict(s) for s in self.services.values() if not category or s["category"] == category]
        return sorted(rows, key=lambda s: s["name"])

    # --- panier ---
    def ensure_cart(self, user_id):
        self.carts.add(user_id)
        self.cart_items.setdefault(user_id, {})

    def cart_exists(self, user_id):
        return user_id in self.carts

    def list_cart_items(self, user_id):
        return [
            {"product_id": pid, "quantity": qty, "products": self.products.get(pid)}
            for pid, qty in self.cart_items.get(user_id, {}).items()
        ]

    def add_cart_item(self, user_id, product_id, quantity):
        uuid_column(product_id)
        lines = self.cart_items.setdefault(user_id, {})
        lines[product_id] = lines.get(product_id, 0) + quantity

    def set_cart_item_quantity(self, user_id, product_id, quantity):
        uuid_column(product_id)
        lines = self.cart_items.get(user_id, {})
        if product_id not in lines:
            return []
        lines[product_id] = quantity
        return [{"user_id": user_id, "product_id": product_id, "quantity": quantity}]

    def delete_cart_item(self, user_id, product_id):
        uuid_column(product_id)
        self.cart_items.get(user_id, {}).pop(product_id, None)

    def clear_cart_items(self, user_id):
        if user_id in self.cart_items:
            self.cart_items[user_id] = {}

    # --- commandes ---
    def get_order_by_session_id(self, session_id):
        return next((dict(o) for o in self.orders if o.get("stripe_session_id") == session_id), None)

    def get_order(self, order_id):
        uuid_column(order_id)
        return next((dict(o) for o in self.orders if o["id"] == order_id), None)

    def insert_order(self, row):
        if any(o.get("stripe_session_id") == row.get("stripe_session_id") for o in self.orders):
            raise unique_violation()
        order = dict(row, id=str(uuid.UUID(int=next(self._ids))), created_at=self._stamp())
        self.orders.append(order)
        return dict(order)

    def _page(self, rows, limit, offset):
        rows = sorted(rows, key=lambda o: o["created_at"], reverse=True)
        return [dict(o) for o in rows[offset:offset + limit]], len(rows)

    def list_user_orders(self, user_id, limit, offset):
        return self._page([o for o in self.orders if o.get("user_id") == user_id], limit, offset)

    def list_all_orders(self, limit, offset, status=None):
        return self._page([o for o in self.orders if not status or o.get("status") == status], limit, offset)

    def update_order(self, order_id, changes):
        uuid_column(order_id)
        for o in self.orders:
            if o["id"] == order_id:
                o.update(changes)
                return dict(o)
        return None

    # --- réservations ---
    def find_active_booking(self, date, time, exclude_id=None):
        return next(
            (dict(b) for b in self.bookings
             if b["date"] == date and b["time"] == time and b["status"] in ("pending", "confirmed") and b["id"] != exclude_id),
            None,
        )

    def insert_booking(self, row):
        if row.get("status") in ("pending", "confirmed") and self.find_active_booking(row["date"], row["time"]):
            raise unique_violation()
        booking = dict(row, id=str(uuid.UUID(int=next(self._ids))), created_at=self._stamp())
        self.bookings.append(booking)
        return dict(booking)

    def list_bookings(self, user_id=None, status=None, date=None, limit=100):
        rows = [
            dict(b) for b in self.bookings
            if (not user_id or b.get("user_id") == user_id)
            and (not status or b["status"] == status)
            and (not date or b["date"] == date)
        ]
        return rows[:limit]

    def get_booking(self, booking_id):
        uuid_column(booking_id)
        return next((dict(b) for b in self.bookings if b["id"] == booking_id), None)

    def update_booking(self, booking_id, changes):
        uuid_column(booking_id)
        for b in self.bookings:
            if b["id"] == booking_id:
                b.update(changes)
                return dict(b)
        return None

    def delete_booking(self, booking_id):
        uuid_column(booking_id)
        before = len(self.bookings)
        self.bookings = [b for b in self.bookings if b["id"] != booking_id]
        return len(self.bookings) < before


@pytest.fixture(autouse=True)
def store(monkeypatch) -> FakeStore:
    """Remplace tous les accès Supabase par le magasin en mémoire."""
    fake = FakeStore()
    monkeypatch.setattr("backend.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("backend.infra.supabase_client.get_service_supabase", lambda: MagicMock())

    patches = {
        "backend.catalog.repository": ["fetch_products_by_ids", "fetch_service_by_id", "list_services"],
        "backend.cart.repository": [
            "ensure_cart", "cart_exists", "list_cart_items", "add_cart_item",
            "set_cart_item_quantity", "delete_cart_item", "clear_cart_items",
        ],
        "backend.orders.repository": [
            "get_order_by_session_id", "get_order", "insert_order",
            "list_user_orders", "list_all_orders", "update_order",
        ],
        "backend.salon.repository": [
            "find_active_booking", "insert_booking", "list_bookings",
            "get_booking", "update_booking", "delete_booking",
        ],
    }
    for module, names in patches.items():
        for name in names:
            monkeypatch.setattr(f"{module}.{name}", getattr(fake, name))
    return fake


class FakeStripe:
    """Sessions Checkout en mémoire (create_session / get_session)."""

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    def create_session(self, **params):
        session_id = f"cs_test_{next(self._ids)}"
        session = {
            "id": session_id,
            "url": f"https://checkout.stripe.test/{session_id}",
            "payment_status": "unpaid",
            "customer_email": params.get("customer_email"),
            "metadata": dict(params.get("metadata") or {}),
        }
        self.sessions[session_id] = session
        self.created.append(params)
        return dict(session)

    def get_session(self, session_id):
        from backend.utils.errors import InvalidInputError
        if session_id not in self.sessions:
            raise InvalidInputError("Session de paiement inconnue")
        return dict(self.sessions[session_id])

    def pay(self, session_id: str) -> None:
        self.sessions[session_id]["payment_status"] = "paid"

    def add_paid_session(self, session_id: str, metadata: Dict[str, str], **extra) -> None:
        self.sessions[session_id] = dict({"id": session_id, "payment_status": "paid", "metadata": metadata}, **extra)


@pytest.fixture(autouse=True)
def stripe_fake(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr("backend.payments.stripe_client.create_session", fake.create_session)
    monkeypatch.setattr("backend.payments.stripe_client.get_session", fake.get_session)
    return fake


@pytest.fixture(autouse=True)
def mailbox(monkeypatch) -> List[Dict[str, Any]]:
    """Capture les e-mails au lieu de joindre un serveur SMTP."""
    sent: List[Dict[str, Any]] = []

    def _send(to_email, subject, text, html=None):
        sent.append({"to": to_email, "subject": subject, "text": text})
        return True

    monkeypatch.setattr("backend.notifications.mailer.send_email", _send)
    return sent


@pytest.fixture(autouse=True)
def fake_identity(monkeypatch):
    """Résout les tokens Bearer de test sans appeler Supabase Auth."""
    from backend.utils.errors import AuthError

    def _get_user_from_token(token):
        if token not in USERS:
            raise AuthError("Token invalide")
        return dict(USERS[token])

    monkeypatch.setattr("backend.auth.service.get_user_from_token", _get_user_from_token)
    return USERS


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def user_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer user-token"}


@pytest.fixture()
def admin_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture()
def catalog(store) -> FakeStore:
    """Catalogue de base: A à 10$, B à 15$ soldé 12$, service de coupe à 45$ / 60 min."""
    store.add_product("00000000-0000-4000-8000-0000000000a1", "Sérum A", 10.0)
    store.add_product("00000000-0000-4000-8000-0000000000b2", "Crème B", 15.0, sale_price=12.0)
    store.add_service("00000000-0000-4000-8000-0000000000c3", "Coupe", 45.0, 60)
    return store
