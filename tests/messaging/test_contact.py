"""Tests for phone normalization and email validation."""

import pytest
from tally.core.errors import InvalidPhone, InvalidRecipient
from tally.messaging.contact import is_valid_email, normalize_phone


@pytest.mark.parametrize(
    "raw",
    [
        "0911223344",
        "911223344",
        "251911223344",
        "+251911223344",
        "+251 91 122 3344",
        "091-122-3344",
        "(091) 122 3344",
    ],
)
def test_accepted_shapes_normalize_to_e164(raw):
    assert normalize_phone(raw) == "+251911223344"


def test_seven_prefix_mobile():
    assert normalize_phone("0711223344") == "+251711223344"
    assert normalize_phone("711223344") == "+251711223344"


def test_normalized_number_is_a_fixed_point():
    once = normalize_phone("0911 22 33 44")
    assert normalize_phone(once) == once


@pytest.mark.parametrize("raw", ["", "abc", "12345", "0811223344", "+1 555 123 4567"])
def test_unrecognized_shape_raises(raw):
    with pytest.raises(InvalidPhone) as exc_info:
        normalize_phone(raw)

    assert exc_info.value.raw == raw
    assert "Expected format" in exc_info.value.message


@pytest.mark.parametrize("raw", ["+2519112233", "25181122334455", "+251811223344"])
def test_right_prefix_wrong_body_raises(raw):
    with pytest.raises(InvalidPhone) as exc_info:
        normalize_phone(raw)

    assert exc_info.value.raw == raw
    assert "after formatting" in exc_info.value.message


def test_invalid_phone_is_a_recipient_error():
    with pytest.raises(InvalidRecipient):
        normalize_phone("12")


@pytest.mark.parametrize(
    "address,expected",
    [
        ("kebede@example.com", True),
        (" kebede@example.com ", True),
        ("a@b.co", True),
        ("", False),
        (None, False),
        ("kebede", False),
        ("kebede@example", False),
        ("keb ede@example.com", False),
        ("@example.com", False),
    ],
)
def test_is_valid_email(address, expected):
    assert is_valid_email(address) is expected
