import json

import pytest

from backend.payments import metadata as meta
from backend.utils.errors import InvalidInputError, InvalidStateError


def _lines(n):
    return [{"product_id": f"00000000-0000-0000-0000-{i:012d}", "quantity": 1, "unit_amount": 1999} for i in range(n)]


def test_metadata_values_respect_stripe_limit_and_decode_back():
    lines = _lines(20)
    encoded = meta.encode_metadata(lines, user_id="user-1", guest_email="a@b.com", shipping_address={"city": "Paris"})

    assert all(isinstance(v, str) and len(v) <= meta.MAX_VALUE_LENGTH for v in encoded.values())
    assert "cart_items_parts" in encoded
    assert meta.decode_items(encoded) == lines
    assert meta.decode_shipping_address(encoded) == {"city": "Paris"}
    assert meta.extract_identity(encoded) == {"user_id": "user-1", "guest_email": "a@b.com", "guest_name": None}


def test_encode_rejects_cart_exceeding_key_budget():
    with pytest.raises(InvalidInputError):
        meta.encode_metadata(_lines(600))


@pytest.mark.parametrize("metadata", [None, {}, {"cart_items": ""}, {"cart_items": "not json"}, {"cart_items": "[]"},
                                      {"cart_items": json.dumps([["p", 0, 100]])}, {"cart_items": json.dumps({"p": 1})}])
def test_decode_items_rejects_missing_empty_or_corrupt(metadata):
    with pytest.raises(InvalidStateError):
        meta.decode_items(metadata)


def test_decode_items_with_missing_chunk_is_invalid_state():
    encoded = meta.encode_metadata(_lines(20))
    encoded.pop("cart_items_1")
    with pytest.raises(InvalidStateError):
        meta.decode_items(encoded)


def test_unreadable_shipping_address_is_ignored():
    assert meta.decode_shipping_address({"shipping_address": "{oops"}) is None
