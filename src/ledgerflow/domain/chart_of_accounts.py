"""Chart of accounts service and the default Indian chart."""

import logging
from typing import NamedTuple, Optional, Sequence

from ledgerflow.database.base import Database
from ledgerflow.domain.entities import AccountingAccount, AccountType
from ledgerflow.domain.errors import ConflictError, NotFoundError, ValidationError, company_not_found

logger = logging.getLogger(__name__)


class AccountTemplate(NamedTuple):
    code: str
    name: str
    type: AccountType


A, L, E, R, X = (
    AccountType.ASSET,
    AccountType.LIABILITY,
    AccountType.EQUITY,
    AccountType.REVENUE,
    AccountType.EXPENSE,
)

# Assets 1xxx, liabilities 2xxx, equity 3xxx, revenue 4xxx, expenses 5xxx
DEFAULT_CHART: tuple[AccountTemplate, ...] = (
    AccountTemplate("1000", "Cash", A),
    AccountTemplate("1010", "Bank", A),
    AccountTemplate("1020", "Payment Gateway", A),
    AccountTemplate("1100", "Accounts Receivable", A),
    AccountTemplate("1110", "GST Input Credit Receivable", A),
    AccountTemplate("1120", "TDS Receivable", A),
    AccountTemplate("1200", "Prepaid Expenses", A),
    AccountTemplate("1500", "Computer Equipment", A),
    AccountTemplate("1510", "Office Furniture", A),
    AccountTemplate("1520", "Accumulated Depreciation", A),
    AccountTemplate("2000", "Accounts Payable", L),
    AccountTemplate("2100", "GST Payable - CGST", L),
    AccountTemplate("2101", "GST Payable - SGST", L),
    AccountTemplate("2102", "GST Payable - IGST", L),
    AccountTemplate("2110", "TDS Payable", L),
    AccountTemplate("2120", "PF Payable", L),
    AccountTemplate("2121", "ESI Payable", L),
    AccountTemplate("2200", "Salaries Payable", L),
    AccountTemplate("2500", "Long-term Loans", L),
    AccountTemplate("3000", "Share Capital", E),
    AccountTemplate("3100", "Retained Earnings", E),
    AccountTemplate("3200", "Current Year Profit/Loss", E),
    AccountTemplate("4000", "Service Revenue", R),
    AccountTemplate("4100", "Product Sales", R),
    AccountTemplate("4200", "Consulting Revenue", R),
    AccountTemplate("4900", "Other Income", R),
    AccountTemplate("5000", "Salaries and Wages", X),
    AccountTemplate("5010", "Employee Benefits", X),
    AccountTemplate("5020", "Contractor Payments", X),
    AccountTemplate("5030", "Recruitment Expenses", X),
    AccountTemplate("5100", "Digital Marketing", X),
    AccountTemplate("5110", "Content Marketing", X),
    AccountTemplate("5120", "Events and Sponsorships", X),
    AccountTemplate("5200", "Software Subscriptions", X),
    AccountTemplate("5210", "Payment Gateway Fees", X),
    AccountTemplate("5300", "Cloud Services", X),
    AccountTemplate("5310", "Server Hosting", X),
    AccountTemplate("5400", "Office Rent", X),
    AccountTemplate("5410", "Utilities", X),
    AccountTemplate("5420", "Internet and Phone", X),
    AccountTemplate("5430", "Legal and Professional Fees", X),
    AccountTemplate("5440", "Bank Charges", X),
    AccountTemplate("5450", "Travel and Transportation", X),
    AccountTemplate("5460", "Office Supplies", X),
    AccountTemplate("5470", "Depreciation", X),
    AccountTemplate("5480", "Miscellaneous Expenses", X),
)


class ChartOfAccountsService:
    """Service for managing a company's chart of accounts."""

    def __init__(self, db: Database, chart: Sequence[AccountTemplate] = DEFAULT_CHART):
        """Initialize chart of accounts service.

        Args:
            db: Database instance
            chart: Accounts seeded by ``initialize``
        """
        self.db = db
        self.chart = tuple(chart)

    def initialize(self, company_id: int) -> int:
        """Seed the chart for a company. Existing codes are left untouched.

        Returns:
            Number of accounts created

        Raises:
            NotFoundError: If the company doesn't exist
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))

        existing = {a.code for a in self.db.list_accounting_accounts(company_id)}
        created = 0
        for template in self.chart:
            if template.code in existing:
                continue
            self.db.create_accounting_account(
                company_id=company_id,
                code=template.code,
                name=template.name,
                account_type=template.type,
            )
            created += 1
        if created:
            logger.info("Seeded %d accounts for company %d", created, company_id)
        return created

    def create_account(self, company_id: int, code: str, name: str, account_type: AccountType | str) -> int:
        """Add a custom account.

        Raises:
            NotFoundError: If the company doesn't exist
            ConflictError: If the code is already used
            ValidationError: If the code, name or type is invalid
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        code = (code or "").strip()
        if not code:
            raise ValidationError("Account code is required")
        if not (name or "").strip():
            raise ValidationError("Account name is required")
        if not isinstance(account_type, AccountType):
            try:
                account_type = AccountType(str(account_type).strip().capitalize())
            except ValueError as e:
                valid = ", ".join(t.value for t in AccountType)
                raise ValidationError(f"Unknown account type '{account_type}' (expected {valid})") from e
        if self.db.get_accounting_account(company_id, code) is not None:
            raise ConflictError(f"Account code {code} already exists for company {company_id}")
        return self.db.create_accounting_account(
            company_id=company_id, code=code, name=name.strip(), account_type=account_type
        )

    def get_account(self, company_id: int, code: str) -> Optional[AccountingAccount]:
        return self.db.get_accounting_account(company_id, code)

    def list_accounts(self, company_id: int) -> list[AccountingAccount]:
        return self.db.list_accounting_accounts(company_id)
