import io
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from paybuilder.builder import InstructionBuilder
from paybuilder.exceptions import (
    EmptyInputError,
    LineParseError,
    MalformedAmountError,
    MalformedDateError,
    MalformedValueError,
)
from paybuilder.models import ParseResult, PaymentInstruction

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ","

# Ordered candidate header names per logical field. The first alias that is
# present in the header and holds a non-blank cell wins.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    # Debtor (payer)
    "debtor_name": ("debtor_name", "debtorname", "payer_name"),
    "debtor_iban": ("debtor_iban", "debtor_account_iban", "payer_iban"),
    "debtor_other_account": ("debtor_account_other", "debtor_account"),
    "debtor_bic": ("debtor_bic", "payer_bic"),
    "debtor_address_line1": ("debtor_address_line1", "debtor_address1"),
    "debtor_address_line2": ("debtor_address_line2", "debtor_address2"),
    "debtor_country": ("debtor_country", "payer_country"),
    # Creditor (payee)
    "creditor_name": ("creditor_name", "creditorname", "payee_name"),
    "creditor_iban": ("creditor_iban", "creditor_account_iban", "payee_iban"),
    "creditor_other_account": ("creditor_account_other", "creditor_account"),
    "creditor_bic": ("creditor_bic", "payee_bic"),
    "creditor_address_line1": ("creditor_address_line1", "creditor_address1"),
    "creditor_address_line2": ("creditor_address_line2", "creditor_address2"),
    "creditor_country": ("creditor_country", "payee_country"),
    # Payment
    "amount": ("amount", "instructed_amount", "payment_amount"),
    "currency": ("currency", "ccy"),
    "execution_date": ("execution_date", "requested_execution_date", "payment_date"),
    "end_to_end_id": ("end_to_end_id", "endtoendid", "reference"),
    "instruction_id": ("instruction_id", "instructionid"),
    # Remittance
    "remittance_unstructured": ("remittance_info", "remittance_information", "payment_reference"),
    "remittance_structured": ("remittance_structured", "structured_remittance"),
    # Classification
    "purpose_code": ("purpose_code", "purpose"),
    "category_purpose_code": ("category_purpose_code", "category_purpose"),
    "charge_bearer": ("charge_bearer", "charges"),
}

DECIMAL_FIELDS = frozenset({"amount"})
DATE_FIELDS = frozenset({"execution_date"})

DATE_FORMAT = "%Y-%m-%d"

_decimal_pattern = re.compile(r"\A[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?\Z")
_date_pattern = re.compile(r"\A[0-9]{4}-[0-9]{2}-[0-9]{2}\Z")


class ErrorPolicy(str, Enum):
    """How a batch parse reacts to a malformed data line."""

    STRICT = "strict"
    SKIP = "skip"


class HeaderIndex:
    """
    Case-insensitive lookup from header name to zero-based column index.
    Built once per batch and shared by every row.
    """

    def __init__(self, columns: Dict[str, int]):
        self.columns = columns

    @classmethod
    def from_line(cls, header_line: str, separator: str = DEFAULT_SEPARATOR) -> "HeaderIndex":
        columns: Dict[str, int] = {}
        header_line = header_line.lstrip("\ufeff")
        for index, name in enumerate(header_line.split(separator)):
            # Duplicate names: the later column wins
            columns[name.strip().lower()] = index
        return cls(columns)

    def resolve(self, cells: Sequence[str], aliases: Iterable[str]) -> Optional[str]:
        """Returns the first non-blank cell among the aliased columns, trimmed."""
        for alias in aliases:
            index = self.columns.get(alias.lower())
            if index is None or index >= len(cells):
                continue
            value = cells[index].strip()
            if value:
                return value
        return None

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.columns

    def __len__(self) -> int:
        return len(self.columns)


def parse_decimal(field: str, raw: str) -> Decimal:
    """
    Coerces a trimmed cell into an exact Decimal.
    Only plain decimal literals are accepted; NaN, Infinity and digit separators are not.
    """
    if not _decimal_pattern.match(raw):
        raise MalformedAmountError(field, raw)
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise MalformedAmountError(field, raw) from None


def parse_date(field: str, raw: str) -> date:
    """Coerces a trimmed cell in strict YYYY-MM-DD form into a calendar date."""
    if not _date_pattern.match(raw):
        raise MalformedDateError(field, raw)
    try:
        return datetime.strptime(raw, DATE_FORMAT).date()
    except ValueError:
        raise MalformedDateError(field, raw) from None


class InstructionParser:
    """
    Normalizes delimited payment rows into PaymentInstruction values.

    The first line is the header. Column names are matched through FIELD_ALIASES,
    blank cells are treated as absent and typed fields are coerced strictly.
    """

    def __init__(
        self,
        separator: str = DEFAULT_SEPARATOR,
        error_policy: ErrorPolicy = ErrorPolicy.STRICT,
    ):
        if not separator:
            raise ValueError("separator must be a non-empty string")
        self.separator = separator
        self.error_policy = ErrorPolicy(error_policy)

    def parse_line(self, header: HeaderIndex, line: str) -> PaymentInstruction:
        """
        Parses a single data line against a prepared header index.

        Raises:
            MalformedAmountError: A decimal field holds a non-numeric value.
            MalformedDateError: A date field is not a valid YYYY-MM-DD date.
        """
        # str.split keeps trailing empty cells
        cells = line.split(self.separator)
        values = {}
        for field, aliases in FIELD_ALIASES.items():
            raw = header.resolve(cells, aliases)
            if raw is None:
                continue
            if field in DECIMAL_FIELDS:
                values[field] = parse_decimal(field, raw)
            elif field in DATE_FIELDS:
                values[field] = parse_date(field, raw)
            else:
                values[field] = raw

        return InstructionBuilder.build(**values)

    def parse_detailed(self, lines: Iterable[str]) -> ParseResult:
        """
        Parses a full batch and reports skipped rows alongside the instructions.

        Args:
            lines: Raw text lines, header first. Line terminators are tolerated.

        Returns:
            ParseResult: Instructions in input order, plus skipped rows under ErrorPolicy.SKIP.

        Raises:
            EmptyInputError: No header line is available.
            LineParseError: A data line is malformed and the policy is STRICT.
        """
        iterator = iter(lines)
        try:
            header_line = next(iterator)
        except StopIteration:
            raise EmptyInputError() from None

        header = HeaderIndex.from_line(header_line.rstrip("\r\n"), self.separator)
        logger.debug("Resolved %d header column(s)", len(header))

        result = ParseResult(instructions=[], line_count=1)
        for line_number, raw_line in enumerate(iterator, start=2):
            result.line_count = line_number
            line = raw_line.rstrip("\r\n")
            if not line.strip():
                continue

            try:
                instruction = self.parse_line(header, line)
            except MalformedValueError as exc:
                error = LineParseError(line_number, exc)
                if self.error_policy is ErrorPolicy.STRICT:
                    raise error from exc
                logger.warning("Skipping line %d: %s", line_number, exc)
                result.skipped.append(error)
                continue

            result.instructions.append(instruction)

        return result

    def parse(self, lines: Iterable[str]) -> List[PaymentInstruction]:
        """Parses a batch and returns only the normalized instructions."""
        return self.parse_detailed(lines).instructions

    def parse_text(self, text: str) -> List[PaymentInstruction]:
        """
        Parses an in-memory text blob. Lines are split on \\n, \\r\\n or \\r.
        An empty string has no header line and raises EmptyInputError.
        """
        return self.parse(io.StringIO(text, newline=""))
