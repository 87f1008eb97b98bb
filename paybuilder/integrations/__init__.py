"""
Integrations with third-party libraries like Pydantic.
"""

from .pydantic import PydanticParty, PydanticPaymentInstruction, dump_instructions, from_dataclass

__all__ = ["from_dataclass", "dump_instructions", "PydanticParty", "PydanticPaymentInstruction"]
