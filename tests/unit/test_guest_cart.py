import pytest

from backend.cart.backends import GuestCart, UserCart, cart_for, GUEST_CART_KEY, MAX_GUEST_LINES
from backend.utils.errors import InvalidInputError, NotFoundError

P1 = "00000000-0000-4000-8000-000000000101"
P2 = "00000000-0000-4000-8000-000000000102"
P9 = "00000000-0000-4000-8000-000000000109"


def test_guest_add_increments_and_keeps_order():
    session = {}
    cart = GuestCart(session)
    cart.add(P1, 1)
    cart.add(P2, 2)
    result = cart.add(P1, 2)
    assert [(i["product_id"], i["quantity"]) for i in result["items"]] == [(P1, 3), (P2, 2)]
    assert result["item_count"] == 5
    assert session[GUEST_CART_KEY][0] == {"product_id": P1, "quantity": 3}


def test_guest_cart_does_not_validate_catalog(store):
    # Pas d'accès catalogue: un produit absent du catalogue est accepté côté invité
    result = GuestCart({}).add(P9, 1)
    assert result["items"][0]["product"] is None


def test_guest_rejects_malformed_product_id():
    session = {}
    with pytest.raises(NotFoundError):
        GuestCart(session).add("ghost", 1)
    assert GUEST_CART_KEY not in session


def test_guest_cart_caps_distinct_lines():
    session = {}
    cart = GuestCart(session)
    ids = [f"00000000-0000-4000-8000-{n:012d}" for n in range(MAX_GUEST_LINES + 1)]
    for product_id in ids[:-1]:
        cart.add(product_id, 1)
    with pytest.raises(InvalidInputError):
        cart.add(ids[-1], 1)
    # Une ligne existante peut toujours être incrémentée
    assert cart.add(ids[0], 1)["item_count"] == MAX_GUEST_LINES + 1
    assert len(session[GUEST_CART_KEY]) == MAX_GUEST_LINES


def test_guest_remove_absent_is_noop_and_set_quantity_absent_is_not_found():
    cart = GuestCart({})
    cart.add(P1, 1)
    assert cart.remove(P9)["item_count"] == 1
    assert cart.remove("ghost")["item_count"] == 1
    with pytest.raises(NotFoundError):
        cart.set_quantity(P9, 2)
    with pytest.raises(InvalidInputError):
        cart.set_quantity(P1, 0)


def test_guest_clear_drops_session_key():
    session = {}
    cart = GuestCart(session)
    cart.add(P1, 1)
    cart.clear()
    assert GUEST_CART_KEY not in session
    assert cart.get()["items"] == []


def test_guest_ignores_corrupt_session_lines():
    session = {GUEST_CART_KEY: [
        {"product_id": P1, "quantity": "x"},
        {"product_id": "", "quantity": 2},
        {"product_id": "not-a-uuid", "quantity": 1},
        {"product_id": P2, "quantity": 1},
    ]}
    assert [i["product_id"] for i in GuestCart(session).get()["items"]] == [P2]


def test_cart_for_selects_by_authentication_state():
    assert isinstance(cart_for({}, None), GuestCart)
    assert isinstance(cart_for({}, {"id": "user-1"}), UserCart)


def test_user_cart_delegates_to_cart_store(catalog):
    cart = cart_for({}, {"id": "user-1"})
    cart.add("00000000-0000-4000-8000-0000000000a1", 2)
    assert cart.get()["item_count"] == 2
    cart.clear()
    assert cart.get()["item_count"] == 0
