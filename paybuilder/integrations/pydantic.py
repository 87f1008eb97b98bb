from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, TypeAdapter

from paybuilder.models import PaymentInstruction


class PydanticParty(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    name: Optional[str] = None
    iban: Optional[str] = None
    other_account: Optional[str] = None
    bic: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    country: Optional[str] = None


class PydanticPaymentInstruction(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    debtor: PydanticParty = PydanticParty()
    creditor: PydanticParty = PydanticParty()
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    execution_date: Optional[date] = None
    end_to_end_id: Optional[str] = None
    instruction_id: Optional[str] = None
    remittance_unstructured: Optional[str] = None
    remittance_structured: Optional[str] = None
    purpose_code: Optional[str] = None
    category_purpose_code: Optional[str] = None
    charge_bearer: Optional[str] = None


_batch_adapter = TypeAdapter(List[PydanticPaymentInstruction])


def from_dataclass(instruction: PaymentInstruction) -> PydanticPaymentInstruction:
    """
    Converts a core PaymentInstruction dataclass into its Pydantic equivalent.
    """
    return PydanticPaymentInstruction.model_validate(instruction)


def dump_instructions(instructions: Sequence[PaymentInstruction], indent: int = 2) -> str:
    """Serializes a batch to a JSON array; amounts keep their exact decimal text."""
    models: List[PydanticPaymentInstruction] = [from_dataclass(i) for i in instructions]
    return _batch_adapter.dump_json(models, indent=indent).decode("utf-8")
