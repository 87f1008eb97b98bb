import re
from typing import List, Optional, Sequence

from paybuilder.models import Party, PaymentInstruction, ValidationReport


class Validator:
    """
    Advisory pre-submission checks for normalized payment instructions.

    Findings never block parsing or generation; they are reported for the
    operator to act on before the document is sent to a bank.
    """

    _bic_pattern = re.compile(r"\A[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?\Z")
    _iban_format_pattern = re.compile(r"\A[A-Z]{2}[0-9]{2}[A-Z0-9]{11,30}\Z")
    _iban_cleaner_pattern = re.compile(r"[ \-\.]")
    _currency_pattern = re.compile(r"\A[A-Z]{3}\Z")
    _country_pattern = re.compile(r"\A[A-Z]{2}\Z")

    @staticmethod
    def _validate_bic(bic: Optional[str]) -> Optional[str]:
        """
        Validates ISO 9362 BIC formatting strictly mapping to 8 or 11
        alphanumeric constraints.
        """
        if not bic:
            return None

        if not Validator._bic_pattern.match(bic):
            return f"Invalid BIC format: '{bic}'. Must match ISO 9362 standard 8 or 11 characters."

        return None

    @staticmethod
    def _validate_iban_checksum(iban: Optional[str]) -> Optional[str]:
        """
        Validates an International Bank Account Number (IBAN) using the
        Modulo-97 algorithm.
        Returns None if valid, or an error string if invalid.
        """
        if not iban:
            return None

        if len(iban) > 100:
            return "Invalid IBAN structure: excessively long string rejected."

        formatted_iban = Validator._iban_cleaner_pattern.sub("", iban.strip().upper())

        if not Validator._iban_format_pattern.match(formatted_iban):
            return f"Invalid IBAN format: '{iban.strip()}' does not meet ISO 13616 standards."

        # Move the country code and check digits to the end, then map A=10 ... Z=35
        rearranged = formatted_iban[4:] + formatted_iban[:4]
        numeric_iban = "".join(
            str(ord(char) - 55) if char.isalpha() else char for char in rearranged
        )

        if int(numeric_iban) % 97 != 1:
            return (
                f"Invalid IBAN checksum: '{formatted_iban}'. Failed international "
                "Modulo-97 algorithm."
            )

        return None

    @staticmethod
    def _validate_party(party: Party, label: str) -> List[str]:
        errors = []

        bic_err = Validator._validate_bic(party.bic)
        if bic_err:
            errors.append(f"[{label} Agent] {bic_err}")

        iban_err = Validator._validate_iban_checksum(party.iban)
        if iban_err:
            errors.append(f"[{label} Account] {iban_err}")

        if party.country is not None and not Validator._country_pattern.match(party.country):
            errors.append(
                f"[{label} Address] country must be exactly 2 uppercase letters, found: '{party.country}'"
            )

        return errors

    @staticmethod
    def validate(instruction: PaymentInstruction) -> ValidationReport:
        """
        Executes the format and checksum rules against a single instruction.
        Returns a structured ValidationReport containing the findings.
        """
        errors = []
        errors.extend(Validator._validate_party(instruction.debtor, "Debtor"))
        errors.extend(Validator._validate_party(instruction.creditor, "Creditor"))

        if instruction.currency is not None and not Validator._currency_pattern.match(
            instruction.currency
        ):
            errors.append(
                f"currency must be exactly 3 uppercase letters, found: '{instruction.currency}'"
            )

        if instruction.amount is not None and instruction.amount < 0:
            errors.append(f"amount is negative: '{instruction.amount}'")

        return ValidationReport(is_valid=not errors, errors=errors)

    @staticmethod
    def validate_batch(instructions: Sequence[PaymentInstruction]) -> ValidationReport:
        """
        Validates every instruction and prefixes findings with the 1-based record number.
        """
        errors = []
        for number, instruction in enumerate(instructions, start=1):
            report = Validator.validate(instruction)
            errors.extend(f"[Record {number}] {err}" for err in report.errors)
        return ValidationReport(is_valid=not errors, errors=errors)
