"""Company domain service."""

from typing import Optional
from ledgerflow.database.base import Database
from ledgerflow.domain.chart_of_accounts import ChartOfAccountsService
from ledgerflow.domain.entities import Company
from ledgerflow.domain.errors import ConflictError, NotFoundError, ValidationError, company_not_found


class CompanyService:
    """Service for managing companies."""

    def __init__(self, db: Database, chart: Optional[ChartOfAccountsService] = None):
        """Initialize company service.

        Args:
            db: Database instance
            chart: Chart of accounts service used to seed new companies
        """
        self.db = db
        self.chart = chart or ChartOfAccountsService(db)

    def create_company(self, name: str, seed_chart: bool = True) -> int:
        """Create a company and seed its chart of accounts.

        Args:
            name: Company name (must be unique)
            seed_chart: Seed the default chart of accounts

        Returns:
            Company ID

        Raises:
            ValidationError: If the name is empty
            ConflictError: If a company with this name already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Company name is required")
        if self.db.get_company_by_name(name) is not None:
            raise ConflictError(f"Company with name '{name}' already exists")

        company_id = self.db.create_company(name)
        if seed_chart:
            self.chart.initialize(company_id)
        return company_id

    def get_company(self, company_id: int) -> Optional[Company]:
        return self.db.get_company(company_id)

    def list_companies(self) -> list[Company]:
        return self.db.list_companies()

    def resolve(self, company: str) -> Company:
        """Find a company by ID or name.

        Raises:
            NotFoundError: If nothing matches
        """
        if company.isdigit():
            found = self.db.get_company(int(company))
            if found is not None:
                return found
        found = self.db.get_company_by_name(company)
        if found is None:
            if company.isdigit():
                raise NotFoundError(company_not_found(int(company)))
            raise NotFoundError(f"Company '{company}' not found")
        return found
