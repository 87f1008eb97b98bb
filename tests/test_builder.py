from decimal import Decimal

from paybuilder.builder import InstructionBuilder
from paybuilder.models import Party, PaymentInstruction


def test_builder_groups_party_fields():
    msg = InstructionBuilder.build(
        debtor_name="John Doe",
        debtor_iban="DE89370400440532013000",
        creditor_name="Jane Smith",
        creditor_other_account="ACC-7",
        creditor_address_line1="1 High Street",
        amount=Decimal("150.00"),
        currency="USD",
    )

    assert isinstance(msg, PaymentInstruction)
    assert msg.debtor == Party(name="John Doe", iban="DE89370400440532013000")
    assert msg.creditor.name == "Jane Smith"
    assert msg.creditor.other_account == "ACC-7"
    assert msg.creditor.address_line1 == "1 High Street"
    assert msg.creditor.account_identifier == "ACC-7"
    assert msg.amount == Decimal("150.00")
    assert msg.currency == "USD"


def test_builder_filters_unknown_kwargs():
    msg = InstructionBuilder.build(
        end_to_end_id="E2E-1",
        unknown_junk_field="SHOULD_BE_DROPPED",
        creditor_shoe_size=44,
    )

    assert msg.end_to_end_id == "E2E-1"
    assert not hasattr(msg, "unknown_junk_field")
    assert not hasattr(msg.creditor, "shoe_size")


def test_builder_merges_explicit_party():
    msg = InstructionBuilder.build(
        creditor=Party(name="Jane", iban="GB29NWBK60161331926819"),
        creditor_name="Ignored",
        creditor_country="GB",
    )

    assert msg.creditor.name == "Jane"
    assert msg.creditor.iban == "GB29NWBK60161331926819"
    assert msg.creditor.country == "GB"
    assert msg.debtor == Party()


def test_builder_edge_cases():
    msg_empty = InstructionBuilder.build()
    assert msg_empty == PaymentInstruction()
    assert msg_empty.debtor.name is None
    assert msg_empty.creditor.account_identifier is None


def test_to_dict_expands_parties():
    msg = InstructionBuilder.build(creditor_name="Jane", amount=Decimal("1.10"))
    data = msg.to_dict()
    assert data["creditor"]["name"] == "Jane"
    assert data["debtor"]["iban"] is None
    assert data["amount"] == Decimal("1.10")
