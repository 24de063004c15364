from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import date
from typing import Literal, Optional, Union


CardBrand = Literal["visa", "mastercard", "amex", "discover"]

RejectReason = Literal[
    "missing_fields",
    "card_number_invalid",
    "unsupported_brand",
    "card_length",
    "luhn_failed",
    "cvv_invalid",
    "cvv_length",
    "expiry_format",
    "card_expired",
    "routing_invalid",
    "account_invalid",
    "unsupported_mode",
]

_SEPARATORS_PAT = re.compile(r"[\s\-]")
_DIGITS_PAT = re.compile(r"[0-9]+")
_EXPIRY_PAT = re.compile(r"^\s*(\d{1,2})\s*/\s*(\d{2}|\d{4})\s*$")
_ROUTING_PAT = re.compile(r"[0-9]{9}")
_ACCOUNT_PAT = re.compile(r"[0-9]{7,12}")

# IIN prefixes; order matters only for readability, the sets are disjoint.
_BRAND_PATS: tuple[tuple[CardBrand, re.Pattern[str]], ...] = (
    ("amex", re.compile(r"^3[47]")),
    ("visa", re.compile(r"^4")),
    ("mastercard", re.compile(r"^(?:5[1-5]|222[1-9]|22[3-9]\d|2[3-6]\d{2}|27[01]\d|2720)")),
    ("discover", re.compile(r"^(?:6011|65)")),
)
_BRAND_LENGTHS: dict[str, tuple[int, ...]] = {
    "amex": (15,),
    "visa": (16,),
    "mastercard": (16,),
    "discover": (16,),
}
_CVV_LENGTHS: dict[str, int] = {"amex": 4}


@dataclass(frozen=True, slots=True)
class CardEnvelope:
    number: str
    cvv: str
    expiry_month: str
    expiry_year: str
    mode: Literal["card"] = "card"

    @property
    def number_digits(self) -> str:
        return _SEPARATORS_PAT.sub("", self.number or "")

    @property
    def brand(self) -> Optional[CardBrand]:
        return detect_brand(self.number_digits)


@dataclass(frozen=True, slots=True)
class BankEnvelope:
    routing: str
    account: str
    check_number: Optional[str] = None
    mode: Literal["bank"] = "bank"


PaymentEnvelope = Union[CardEnvelope, BankEnvelope]


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    reason: Optional[RejectReason] = None
    brand: Optional[CardBrand] = None

    def to_payload(self) -> dict[str, object]:
        return asdict(self)


def detect_brand(number_digits: str) -> Optional[CardBrand]:
    for brand, pat in _BRAND_PATS:
        if pat.match(number_digits or ""):
            return brand
    return None


def luhn_check(number_digits: str) -> bool:
    if not _DIGITS_PAT.fullmatch(number_digits or ""):
        return False
    total = 0
    for i, ch in enumerate(reversed(number_digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def parse_expiry(text: str) -> Optional[tuple[int, int]]:
    """"MM/YY" (or MM/YYYY) -> (year, month); None when malformed."""
    m = _EXPIRY_PAT.match(text or "")
    if not m:
        return None
    month = int(m.group(1))
    year = int(m.group(2))
    if year < 100:
        year += 2000
    if not 1 <= month <= 12:
        return None
    return year, month


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _validate_card(env: CardEnvelope, today: date) -> ValidationResult:
    if any(_is_blank(v) for v in (env.number, env.cvv, env.expiry_month, env.expiry_year)):
        return ValidationResult(ok=False, reason="missing_fields")
    digits = env.number_digits
    if not _DIGITS_PAT.fullmatch(digits):
        return ValidationResult(ok=False, reason="card_number_invalid")
    brand = detect_brand(digits)
    if brand is None:
        return ValidationResult(ok=False, reason="unsupported_brand")
    if len(digits) not in _BRAND_LENGTHS[brand]:
        return ValidationResult(ok=False, reason="card_length", brand=brand)
    if not luhn_check(digits):
        return ValidationResult(ok=False, reason="luhn_failed", brand=brand)
    cvv = env.cvv.strip()
    if not _DIGITS_PAT.fullmatch(cvv):
        return ValidationResult(ok=False, reason="cvv_invalid", brand=brand)
    if len(cvv) != _CVV_LENGTHS.get(brand, 3):
        return ValidationResult(ok=False, reason="cvv_length", brand=brand)
    parsed = parse_expiry(f"{env.expiry_month.strip()}/{env.expiry_year.strip()}")
    if parsed is None:
        return ValidationResult(ok=False, reason="expiry_format", brand=brand)
    # Valid through the last day of the expiry month.
    if parsed < (today.year, today.month):
        return ValidationResult(ok=False, reason="card_expired", brand=brand)
    return ValidationResult(ok=True, brand=brand)


def _validate_bank(env: BankEnvelope) -> ValidationResult:
    if _is_blank(env.routing) or _is_blank(env.account):
        return ValidationResult(ok=False, reason="missing_fields")
    if not _ROUTING_PAT.fullmatch(env.routing.strip()):
        return ValidationResult(ok=False, reason="routing_invalid")
    if not _ACCOUNT_PAT.fullmatch(env.account.strip()):
        return ValidationResult(ok=False, reason="account_invalid")
    return ValidationResult(ok=True)


def validate(envelope: object, *, today: Optional[date] = None) -> ValidationResult:
    """
    Decide whether a payment envelope may be handed to the gateway.

    Never raises for caller input; every rejection carries a distinct reason.
    """
    if isinstance(envelope, CardEnvelope):
        return _validate_card(envelope, today or date.today())
    if isinstance(envelope, BankEnvelope):
        return _validate_bank(envelope)
    return ValidationResult(ok=False, reason="unsupported_mode")
