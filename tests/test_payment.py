from __future__ import annotations

from datetime import date

from callflow.payment import (
    BankEnvelope,
    CardEnvelope,
    detect_brand,
    luhn_check,
    parse_expiry,
    validate,
)


TODAY = date(2026, 10, 18)


def _card(number: str = "4111111111111111", cvv: str = "123", month: str = "12", year: str = "30") -> CardEnvelope:
    return CardEnvelope(number=number, cvv=cvv, expiry_month=month, expiry_year=year)


def test_valid_visa() -> None:
    res = validate(_card(), today=TODAY)
    assert res.ok is True
    assert res.reason is None
    assert res.brand == "visa"


def test_short_cvv_is_rejected_with_cvv_reason() -> None:
    res = validate(_card(cvv="99"), today=TODAY)
    assert res.ok is False
    assert res.reason == "cvv_length"


def test_brands_and_cvv_lengths() -> None:
    assert validate(_card("378282246310005", cvv="1234"), today=TODAY).brand == "amex"
    assert validate(_card("378282246310005", cvv="123"), today=TODAY).reason == "cvv_length"
    assert validate(_card("5555555555554444"), today=TODAY).brand == "mastercard"
    assert validate(_card("2221000000000009"), today=TODAY).ok is True
    assert validate(_card("6011111111111117"), today=TODAY).brand == "discover"


def test_number_problems_have_distinct_reasons() -> None:
    assert validate(_card("4111111111111112"), today=TODAY).reason == "luhn_failed"
    assert validate(_card("9111111111111111"), today=TODAY).reason == "unsupported_brand"
    assert validate(_card("411111111111"), today=TODAY).reason == "card_length"
    assert validate(_card("4111abcd11111111"), today=TODAY).reason == "card_number_invalid"
    assert validate(_card("4111-1111 1111-1111"), today=TODAY).ok is True
    assert validate(_card(cvv=""), today=TODAY).reason == "missing_fields"
    assert validate(_card(cvv="12a"), today=TODAY).reason == "cvv_invalid"


def test_expiry_rules() -> None:
    assert validate(_card(month="10", year="26"), today=TODAY).ok is True
    assert validate(_card(month="09", year="26"), today=TODAY).reason == "card_expired"
    assert validate(_card(month="13", year="30"), today=TODAY).reason == "expiry_format"
    assert validate(_card(month="1", year="2031"), today=TODAY).ok is True
    assert parse_expiry("07/29") == (2029, 7)
    assert parse_expiry("7-29") is None


def test_bank_envelopes() -> None:
    assert validate(BankEnvelope(routing="021000021", account="1234567")).ok is True
    assert validate(BankEnvelope(routing="02100002", account="1234567")).reason == "routing_invalid"
    assert validate(BankEnvelope(routing="021000021", account="123456")).reason == "account_invalid"
    assert validate(BankEnvelope(routing="021000021", account="1234567890123")).reason == "account_invalid"
    assert validate(BankEnvelope(routing="", account="1234567")).reason == "missing_fields"
    assert validate(BankEnvelope(routing="021000021", account="123456789012", check_number="abc")).ok is True


def test_unknown_envelope_is_rejected_not_raised() -> None:
    assert validate("card 4111").reason == "unsupported_mode"


def test_luhn_and_brand_helpers() -> None:
    assert luhn_check("79927398713") is True
    assert luhn_check("79927398710") is False
    assert luhn_check("") is False
    assert detect_brand("340000") == "amex"
    assert detect_brand("2720990000000000") == "mastercard"
    assert detect_brand("2721000000000000") is None
