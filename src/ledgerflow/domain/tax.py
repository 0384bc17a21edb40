"""Tax regimes: how a given tax amount is split across ledger accounts."""

from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP

from ledgerflow.domain.entities import PostingLine
from ledgerflow.domain.errors import ValidationError

CENT = Decimal("0.01")


class TaxRegime(ABC):
    """Turns a tax amount into journal lines."""

    name = "tax"

    @abstractmethod
    def input_credit_lines(self, tax_amount: Decimal) -> list[PostingLine]:
        """Debit lines for tax paid on purchases."""
        pass

    @abstractmethod
    def output_liability_lines(self, tax_amount: Decimal, inter_state: bool = True) -> list[PostingLine]:
        """Credit lines for tax collected on sales."""
        pass

    def account_codes(self) -> tuple[str, ...]:
        return ()


class GSTRegime(TaxRegime):
    """Indian GST.

    Purchases claim the whole amount as input credit. Sales book IGST when
    inter-state, otherwise split the amount evenly into CGST and SGST.
    """

    name = "gst"

    def __init__(
        self,
        input_credit_code: str = "1110",
        cgst_code: str = "2100",
        sgst_code: str = "2101",
        igst_code: str = "2102",
    ):
        self.input_credit_code = input_credit_code
        self.cgst_code = cgst_code
        self.sgst_code = sgst_code
        self.igst_code = igst_code

    def input_credit_lines(self, tax_amount):
        if tax_amount <= 0:
            return []
        return [PostingLine(self.input_credit_code, debit=tax_amount)]

    def output_liability_lines(self, tax_amount, inter_state=True):
        if tax_amount <= 0:
            return []
        if inter_state:
            return [PostingLine(self.igst_code, credit=tax_amount)]
        cgst = (tax_amount / 2).quantize(CENT, rounding=ROUND_HALF_UP)
        sgst = tax_amount - cgst
        return [
            PostingLine(self.cgst_code, credit=cgst),
            PostingLine(self.sgst_code, credit=sgst),
        ]

    def account_codes(self):
        return (self.input_credit_code, self.cgst_code, self.sgst_code, self.igst_code)


class NoTaxRegime(TaxRegime):
    """No indirect tax; a tax amount is an error."""

    name = "none"

    def input_credit_lines(self, tax_amount):
        if tax_amount > 0:
            raise ValidationError("Tax amounts are not supported without a tax regime")
        return []

    def output_liability_lines(self, tax_amount, inter_state=True):
        return self.input_credit_lines(tax_amount)
