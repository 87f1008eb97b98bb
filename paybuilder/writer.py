import logging
import re
import uuid
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from lxml import etree

from paybuilder.models import Party, PaymentInstruction

logger = logging.getLogger(__name__)

PAIN013_SCHEMA = "pain.013.001.11"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
CREATION_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

DEFAULT_INITIATING_PARTY = "Payment Builder System"
DEFAULT_CURRENCY = "EUR"
DEFAULT_AMOUNT_TEXT = "0.00"
PAYMENT_METHOD = "TRF"

MESSAGE_ID_PREFIX = "MSG-"
PAYMENT_INFO_ID_PREFIX = "PMTINF-"
END_TO_END_ID_PREFIX = "E2E-"

_INDENT = "  "
# Characters outside the XML 1.0 Char production
_XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
# Gated containers keep an open/close pair even when nothing is rendered inside them
_CONTAINER_PATHS = {
    ("CdtTrfTxInf", "PmtTpInf"),
    ("CdtTrfTxInf", "RmtInf"),
    ("CdtrAcct", "Id"),
}
_ENTITIES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


class Clock(Protocol):
    """Source of the message creation timestamp."""

    def now(self) -> datetime:  # pragma: no cover - protocol stub
        ...


class TokenSource(Protocol):
    """Source of the random suffix used for generated identifiers."""

    def new_token(self) -> str:  # pragma: no cover - protocol stub
        """Return 8 uppercase alphanumeric characters, independently random per call."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


class UuidTokenSource:
    def new_token(self) -> str:
        return uuid.uuid4().hex[:8].upper()


def escape_text(value: Optional[str]) -> str:
    """
    Escapes the five predefined XML entities. None renders as an empty string.
    """
    if value is None:
        return ""
    text = str(value)
    for char, entity in _ENTITIES:
        text = text.replace(char, entity)
    return text


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """
    Drops characters that XML 1.0 cannot carry (C0 controls other than tab, LF
    and CR, lone surrogates, U+FFFE and U+FFFF). None stays None.
    """
    if value is None:
        return None
    return _XML_INVALID_CHARS.sub("", str(value))


def _is_container(element: etree._Element) -> bool:
    parent = element.getparent()
    if parent is None:
        return False
    return (etree.QName(parent).localname, etree.QName(element).localname) in _CONTAINER_PATHS


def _present(value: Optional[str]) -> bool:
    return value is not None


def should_emit_payment_type_info(instruction: PaymentInstruction) -> bool:
    """
    PmtTpInf appears when either purpose code is set, although only the
    category purpose is rendered inside it.
    """
    return _present(instruction.category_purpose_code) or _present(instruction.purpose_code)


def should_emit_remittance_info(instruction: PaymentInstruction) -> bool:
    """
    RmtInf appears when either remittance text is set, although only the
    unstructured text is rendered inside it.
    """
    return _present(instruction.remittance_unstructured) or _present(
        instruction.remittance_structured
    )


def should_emit_postal_address(party: Party) -> bool:
    """PstlAdr is gated on the first address line or the country; line 2 alone does not open it."""
    return _present(party.address_line1) or _present(party.country)


def format_amount(instruction: PaymentInstruction) -> str:
    """Renders the parsed decimal as written, keeping its scale and any exponent form."""
    if instruction.amount is None:
        return DEFAULT_AMOUNT_TEXT
    return str(instruction.amount)


class Pain013Writer:
    """
    Compiles an ordered batch of PaymentInstruction values into a single
    ISO 20022 pain.013 Creditor Payment Activation Request document.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        token_source: Optional[TokenSource] = None,
        initiating_party: str = DEFAULT_INITIATING_PARTY,
    ):
        """
        Args:
            clock: Provides the CreDtTm timestamp. Defaults to the local wall clock.
            token_source: Provides identifier suffixes. Defaults to uuid4 based tokens.
            initiating_party: Literal written to GrpHdr/InitgPty/Nm.
        """
        self.clock = clock or SystemClock()
        self.token_source = token_source or UuidTokenSource()
        self.initiating_party = initiating_party
        self.schema = PAIN013_SCHEMA
        self.namespace = f"urn:iso:std:iso:20022:tech:xsd:{self.schema}"
        self.nsmap = {None: self.namespace}

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}{self.token_source.new_token()}"

    def build_tree(self, instructions: Sequence[PaymentInstruction]) -> etree._Element:
        """
        Builds the Document element tree. Identifiers are drawn in document order:
        MsgId, PmtInfId, then one EndToEndId per instruction lacking its own.
        """
        document = etree.Element("Document", nsmap=self.nsmap)
        activation_request = etree.SubElement(document, "CdtrPmtActvtnReq")

        self._build_group_header(activation_request, len(instructions))

        pmt_inf = etree.SubElement(activation_request, "PmtInf")
        pmt_inf_id = etree.SubElement(pmt_inf, "PmtInfId")
        pmt_inf_id.text = self._new_id(PAYMENT_INFO_ID_PREFIX)
        pmt_mtd = etree.SubElement(pmt_inf, "PmtMtd")
        pmt_mtd.text = PAYMENT_METHOD

        for instruction in instructions:
            self._build_transaction(pmt_inf, instruction)

        return document

    def to_xml(self, instructions: Sequence[PaymentInstruction]) -> str:
        """
        Renders the batch as UTF-8 ready XML text.

        The text starts with the XML declaration, uses two-space indentation and
        ends with `</Document>` without a trailing newline.
        """
        instructions = list(instructions)
        document = self.build_tree(instructions)

        lines: List[str] = [XML_DECLARATION]
        self._render(document, 0, lines)
        logger.debug("Rendered pain.013 document with %d transaction(s)", len(instructions))
        return "\n".join(lines)

    def _render(self, element: etree._Element, depth: int, lines: List[str]) -> None:
        # lxml only escapes &, < and > in text nodes, so serialization is done by hand
        indent = _INDENT * depth
        tag = etree.QName(element).localname

        attributes = ""
        if depth == 0 and element.nsmap.get(None):
            attributes += f' xmlns="{escape_text(element.nsmap[None])}"'
        for name, value in element.attrib.items():
            attributes += f' {name}="{escape_text(value)}"'

        if len(element) or _is_container(element):
            lines.append(f"{indent}<{tag}{attributes}>")
            for child in element:
                self._render(child, depth + 1, lines)
            lines.append(f"{indent}</{tag}>")
        else:
            lines.append(f"{indent}<{tag}{attributes}>{escape_text(element.text)}</{tag}>")

    def _build_group_header(self, root: etree._Element, number_of_transactions: int):
        """Builds the GrpHdr node."""
        grp_hdr = etree.SubElement(root, "GrpHdr")

        msg_id = etree.SubElement(grp_hdr, "MsgId")
        msg_id.text = self._new_id(MESSAGE_ID_PREFIX)

        cre_dt_tm = etree.SubElement(grp_hdr, "CreDtTm")
        cre_dt_tm.text = self.clock.now().strftime(CREATION_DATETIME_FORMAT)

        nb_of_txs = etree.SubElement(grp_hdr, "NbOfTxs")
        nb_of_txs.text = str(number_of_transactions)

        initg_pty = etree.SubElement(grp_hdr, "InitgPty")
        nm = etree.SubElement(initg_pty, "Nm")
        nm.text = sanitize_text(self.initiating_party)

    def _build_transaction(self, pmt_inf: etree._Element, instruction: PaymentInstruction):
        """Builds one CdtTrfTxInf node; child order is fixed by the schema."""
        tx_inf = etree.SubElement(pmt_inf, "CdtTrfTxInf")

        # Payment Identification
        pmt_id = etree.SubElement(tx_inf, "PmtId")
        if instruction.instruction_id is not None:
            instr_id = etree.SubElement(pmt_id, "InstrId")
            instr_id.text = sanitize_text(instruction.instruction_id)

        e2e_id = etree.SubElement(pmt_id, "EndToEndId")
        if instruction.end_to_end_id is not None:
            e2e_id.text = sanitize_text(instruction.end_to_end_id)
        else:
            e2e_id.text = self._new_id(END_TO_END_ID_PREFIX)

        # Payment Type Information
        if should_emit_payment_type_info(instruction):
            pmt_tp_inf = etree.SubElement(tx_inf, "PmtTpInf")
            if instruction.category_purpose_code is not None:
                ctgy_purp = etree.SubElement(pmt_tp_inf, "CtgyPurp")
                cd = etree.SubElement(ctgy_purp, "Cd")
                cd.text = sanitize_text(instruction.category_purpose_code)

        # Amount
        amt = etree.SubElement(tx_inf, "Amt")
        instd_amt = etree.SubElement(amt, "InstdAmt")
        instd_amt.set("Ccy", sanitize_text(instruction.currency or DEFAULT_CURRENCY))
        instd_amt.text = format_amount(instruction)

        if instruction.charge_bearer is not None:
            chrg_br = etree.SubElement(tx_inf, "ChrgBr")
            chrg_br.text = sanitize_text(instruction.charge_bearer)

        creditor = instruction.creditor

        # Creditor Agent
        if creditor.bic is not None:
            cdtr_agt = etree.SubElement(tx_inf, "CdtrAgt")
            fin_instn_id = etree.SubElement(cdtr_agt, "FinInstnId")
            bicfi = etree.SubElement(fin_instn_id, "BICFI")
            bicfi.text = sanitize_text(creditor.bic)

        # Creditor
        cdtr = etree.SubElement(tx_inf, "Cdtr")
        nm = etree.SubElement(cdtr, "Nm")
        nm.text = sanitize_text(creditor.name)
        if should_emit_postal_address(creditor):
            self._build_postal_address(cdtr, creditor)

        # Creditor Account
        cdtr_acct = etree.SubElement(tx_inf, "CdtrAcct")
        id_node = etree.SubElement(cdtr_acct, "Id")
        if creditor.iban is not None:
            iban_node = etree.SubElement(id_node, "IBAN")
            iban_node.text = sanitize_text(creditor.iban)
        elif creditor.other_account is not None:
            othr = etree.SubElement(id_node, "Othr")
            othr_id = etree.SubElement(othr, "Id")
            othr_id.text = sanitize_text(creditor.other_account)

        # Remittance Information
        if should_emit_remittance_info(instruction):
            rmt_inf = etree.SubElement(tx_inf, "RmtInf")
            if instruction.remittance_unstructured is not None:
                ustrd = etree.SubElement(rmt_inf, "Ustrd")
                ustrd.text = sanitize_text(instruction.remittance_unstructured)

    def _build_postal_address(self, parent: etree._Element, party: Party):
        """Builds a PstlAdr node."""
        pstl_adr = etree.SubElement(parent, "PstlAdr")

        if party.country is not None:
            ctry = etree.SubElement(pstl_adr, "Ctry")
            ctry.text = sanitize_text(party.country)

        for line in (party.address_line1, party.address_line2):
            if line is not None:
                adr_line = etree.SubElement(pstl_adr, "AdrLine")
                adr_line.text = sanitize_text(line)
