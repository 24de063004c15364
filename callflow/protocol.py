from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .payment import BankEnvelope, CardEnvelope, PaymentEnvelope


class _Wire(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class AdvanceRequest(_Wire):
    session_id: str = Field(min_length=1)
    utterance: str = ""


class AdvanceResponse(_Wire):
    markup_text: str
    tone: str
    pause_ms: int
    terminal: bool
    node_id: str
    intent: Optional[str] = None


class CardPaymentIn(_Wire):
    mode: Literal["card"]
    number: str = ""
    cvv: str = ""
    expiry_month: str = ""
    expiry_year: str = ""

    def to_envelope(self) -> CardEnvelope:
        return CardEnvelope(
            number=self.number,
            cvv=self.cvv,
            expiry_month=self.expiry_month,
            expiry_year=self.expiry_year,
        )


class BankPaymentIn(_Wire):
    mode: Literal["bank"]
    routing: str = ""
    account: str = ""
    check_number: Optional[str] = None

    def to_envelope(self) -> BankEnvelope:
        return BankEnvelope(routing=self.routing, account=self.account, check_number=self.check_number)


PaymentIn = Annotated[Union[CardPaymentIn, BankPaymentIn], Field(discriminator="mode")]

_PAYMENT_ADAPTER: TypeAdapter[Union[CardPaymentIn, BankPaymentIn]] = TypeAdapter(PaymentIn)


class ValidationOut(_Wire):
    ok: bool
    reason: Optional[str] = None
    brand: Optional[str] = None


class ValueWindowOut(_Wire):
    ok: bool
    elapsed_ms: int
    within_max: bool
    started_at_ms: int
    completed_at_ms: Optional[int] = None


def parse_payment(obj: Any) -> PaymentEnvelope:
    if isinstance(obj, (str, bytes)):
        obj = json.loads(obj)
    return _PAYMENT_ADAPTER.validate_python(obj).to_envelope()
