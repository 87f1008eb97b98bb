from typing import Optional


class PaymentBuilderError(Exception):
    """Base class for every error raised while normalizing a payment batch."""

    code: str = "PAYMENT_BUILDER_ERROR"


class EmptyInputError(PaymentBuilderError):
    """Raised when the input has no header line at all."""

    code = "EMPTY_INPUT"

    def __init__(self, message: str = "Input is empty: no header line found"):
        super().__init__(message)


class MalformedValueError(PaymentBuilderError):
    """
    A non-empty cell could not be coerced into its typed field.

    Attributes:
        field (str): The logical field name (e.g. 'amount').
        value (str): The offending raw cell value, already trimmed.
    """

    def __init__(self, field: str, value: str, message: str):
        super().__init__(message)
        self.field = field
        self.value = value


class MalformedAmountError(MalformedValueError):
    code = "MALFORMED_AMOUNT"

    def __init__(self, field: str, value: str):
        super().__init__(field, value, f"Invalid decimal value: {value}")


class MalformedDateError(MalformedValueError):
    code = "MALFORMED_DATE"

    def __init__(self, field: str, value: str):
        super().__init__(
            field, value, f"Invalid date value: {value}. Expected format: YYYY-MM-DD"
        )


class LineParseError(PaymentBuilderError):
    """
    Wraps a coercion failure with the 1-based source line it came from.
    The header is line 1 and blank lines are counted.
    """

    def __init__(self, line_number: int, cause: PaymentBuilderError):
        super().__init__(f"Error parsing line {line_number}: {cause}")
        self.line_number = line_number
        self.cause = cause
        self.code = cause.code

    @property
    def value(self) -> Optional[str]:
        return getattr(self.cause, "value", None)
