"""Table-driven mapping from business events to ledger accounts."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

from ledgerflow.domain.tax import GSTRegime, TaxRegime

DEFAULT_CATEGORY_ACCOUNTS: Mapping[str, str] = MappingProxyType(
    {
        "Salaries": "5000",
        "Benefits": "5010",
        "Training": "5010",
        "Professional Services": "5020",
        "Hiring": "5030",
        "Advertising": "5100",
        "Sales": "5100",
        "Marketing": "5110",
        "Events": "5120",
        "SaaS": "5200",
        "Software": "5200",
        "Subscriptions": "5200",
        "Security": "5200",
        "Customer Support": "5200",
        "Payment Processing": "5210",
        "Cloud": "5300",
        "IT Infrastructure": "5310",
        "Rent": "5400",
        "Utilities": "5410",
        "Legal": "5430",
        "Accounting": "5430",
        "Consulting": "5430",
        "Bank Fees": "5440",
        "Interest Charges": "5440",
        "Travel": "5450",
        "Office Supplies": "5460",
        "Equipment": "5460",
        "Hardware": "5460",
        "Depreciation": "5470",
    }
)


@dataclass(frozen=True)
class PostingPolicy:
    """Account codes used by the named ledger events.

    Categories missing from ``category_accounts`` post to
    ``default_expense_code``.
    """

    category_accounts: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CATEGORY_ACCOUNTS)
    default_expense_code: str = "5480"
    bank_code: str = "1010"
    receivable_code: str = "1100"
    payable_code: str = "2000"
    revenue_code: str = "4000"
    tax_regime: TaxRegime = field(default_factory=GSTRegime)

    def expense_code(self, category: str | None) -> str:
        if category is None:
            return self.default_expense_code
        return self.category_accounts.get(category, self.default_expense_code)

    def with_category(self, category: str, account_code: str) -> "PostingPolicy":
        """Return a copy that posts ``category`` to ``account_code``."""
        accounts = dict(self.category_accounts)
        accounts[category] = account_code
        return replace(self, category_accounts=MappingProxyType(accounts))
