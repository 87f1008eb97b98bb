"""
paybuilder: Normalize delimited payment instruction files and compile them into
ISO 20022 pain.013 Creditor Payment Activation Request XML messages.
"""

from .builder import InstructionBuilder
from .config import BuilderSettings
from .exceptions import (
    EmptyInputError,
    LineParseError,
    MalformedAmountError,
    MalformedDateError,
    PaymentBuilderError,
)
from .models import ParseResult, Party, PaymentInstruction, ValidationReport
from .parser import ErrorPolicy, HeaderIndex, InstructionParser
from .service import BatchProcessor
from .validator import Validator
from .writer import Pain013Writer

__all__ = [
    "InstructionParser",
    "HeaderIndex",
    "ErrorPolicy",
    "Pain013Writer",
    "InstructionBuilder",
    "PaymentInstruction",
    "Party",
    "ParseResult",
    "ValidationReport",
    "Validator",
    "BatchProcessor",
    "BuilderSettings",
    "PaymentBuilderError",
    "EmptyInputError",
    "LineParseError",
    "MalformedAmountError",
    "MalformedDateError",
]
