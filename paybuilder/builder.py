from dataclasses import fields
from typing import Any, Dict, Set

from paybuilder.models import Party, PaymentInstruction


class InstructionBuilder:
    """
    A factory for programmatically building PaymentInstruction values from flat keyword data.
    """

    _PARTY_PREFIXES = ("debtor", "creditor")

    @staticmethod
    def _party_fields() -> Set[str]:
        return {f.name for f in fields(Party)}

    @staticmethod
    def build(**kwargs: Any) -> PaymentInstruction:
        """
        Constructs a PaymentInstruction from flat keyword arguments.

        Party attributes are addressed with a `debtor_` or `creditor_` prefix
        (e.g. `creditor_iban`, `debtor_address_line1`). A ready-made Party may also
        be passed directly as `debtor=` or `creditor=`.

        Args:
            **kwargs: The flat field values to assign.

        Returns:
            PaymentInstruction: The frozen instruction instance.

        Note:
            Keys that match neither a party attribute nor an instruction field are
            discarded rather than raising `TypeError`.
        """
        party_fields = InstructionBuilder._party_fields()
        instruction_fields = {f.name for f in fields(PaymentInstruction)}

        parties: Dict[str, Dict[str, Any]] = {p: {} for p in InstructionBuilder._PARTY_PREFIXES}
        filtered_kwargs: Dict[str, Any] = {}

        for key, value in kwargs.items():
            prefix, _, rest = key.partition("_")
            if prefix in parties and rest in party_fields:
                parties[prefix][rest] = value
            elif key in instruction_fields:
                filtered_kwargs[key] = value

        for prefix, values in parties.items():
            if prefix in filtered_kwargs:
                # An explicit Party wins; flat attributes only fill its gaps
                base = filtered_kwargs[prefix]
                merged = {f: getattr(base, f) for f in party_fields}
                merged.update({k: v for k, v in values.items() if merged.get(k) is None})
                filtered_kwargs[prefix] = Party(**merged)
            else:
                filtered_kwargs[prefix] = Party(**values)

        return PaymentInstruction(**filtered_kwargs)
