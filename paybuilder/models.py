from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from paybuilder.exceptions import LineParseError


@dataclass(frozen=True)
class Party:
    """
    A debtor or creditor as read from one input row.

    Every attribute is either a trimmed, non-empty string or None.
    """

    name: Optional[str] = None
    iban: Optional[str] = None
    other_account: Optional[str] = None
    bic: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    country: Optional[str] = None

    @property
    def account_identifier(self) -> Optional[str]:
        """The authoritative account id: the IBAN wins over any other scheme."""
        return self.iban if self.iban is not None else self.other_account


@dataclass(frozen=True)
class PaymentInstruction:
    """
    Normalized representation of a single payment instruction row.

    Attributes:
        debtor (Party):
            The payer. Parsed and carried, but not rendered into pain.013 transactions.
        creditor (Party):
            The payee. Drives the Cdtr, CdtrAgt and CdtrAcct blocks.
        amount (Optional[Decimal]):
            Instructed amount as an exact decimal. The sign is not validated.
        currency (Optional[str]):
            ISO 4217 code. Left as None at parse time; the writer applies its default.
        execution_date (Optional[date]):
            Requested execution date, without a time component.
        end_to_end_id (Optional[str]):
            Caller supplied end-to-end reference; generated by the writer when None.
        instruction_id (Optional[str]):
            Point-to-point instruction reference.
        remittance_unstructured (Optional[str]):
            Free text remittance information.
        remittance_structured (Optional[str]):
            Structured remittance reference text.
        purpose_code (Optional[str]):
            External purpose code. Not validated against any code list.
        category_purpose_code (Optional[str]):
            External category purpose code. Not validated against any code list.
        charge_bearer (Optional[str]):
            Charge bearer code (e.g. 'SLEV', 'SHAR').
    """

    debtor: Party = field(default_factory=Party)
    creditor: Party = field(default_factory=Party)
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

    def to_dict(self) -> dict:
        """
        Converts the instruction into a standard Python dictionary.
        Returns:
            dict: Nested dictionary with `debtor` and `creditor` expanded.
        """
        return asdict(self)


@dataclass
class ParseResult:
    """
    Outcome of a detailed batch parse.

    Attributes:
        instructions (List[PaymentInstruction]): Successfully normalized rows, in input order.
        skipped (List[LineParseError]): Errors for rows dropped under the lenient policy.
        line_count (int): Number of physical lines read, header included.
    """

    instructions: List[PaymentInstruction]
    skipped: List["LineParseError"] = field(default_factory=list)
    line_count: int = 0


@dataclass
class ValidationReport:
    """
    Standardized report returning the advisory state of validated instructions.

    Attributes:
        is_valid (bool): True if no format or checksum findings were produced.
        errors (List[str]): Human readable findings, one per failed rule.
    """

    is_valid: bool
    errors: List[str]
