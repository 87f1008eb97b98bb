import json
from datetime import date
from decimal import Decimal

from paybuilder.integrations.pydantic import (
    PydanticPaymentInstruction,
    dump_instructions,
    from_dataclass,
)
from paybuilder.models import Party, PaymentInstruction


def test_dataclass_to_pydantic_conversion():
    msg = PaymentInstruction(
        debtor=Party(name="John Doe", country="DE"),
        creditor=Party(name="Jane Smith", iban="GB29NWBK60161331926819"),
        amount=Decimal("1000.50"),
        currency="EUR",
        execution_date=date(2025, 11, 15),
    )

    p_msg = from_dataclass(msg)

    assert isinstance(p_msg, PydanticPaymentInstruction)
    assert p_msg.debtor.name == "John Doe"
    assert p_msg.creditor.iban == "GB29NWBK60161331926819"
    assert p_msg.amount == Decimal("1000.50")
    assert p_msg.execution_date == date(2025, 11, 15)


def test_dump_instructions_json():
    batch = [
        PaymentInstruction(amount=Decimal("1000.50"), execution_date=date(2025, 11, 15)),
        PaymentInstruction(creditor=Party(name="Globex")),
    ]

    parsed_json = json.loads(dump_instructions(batch))

    assert len(parsed_json) == 2
    # Exact decimal text survives serialization
    assert parsed_json[0]["amount"] == "1000.50"
    assert parsed_json[0]["execution_date"] == "2025-11-15"
    assert parsed_json[0]["currency"] is None
    assert parsed_json[1]["creditor"]["name"] == "Globex"
    assert parsed_json[1]["amount"] is None


def test_dump_empty_batch():
    assert json.loads(dump_instructions([])) == []
