"""Known vendor domain service."""

from typing import Optional
from ledgerflow.database.base import Database
from ledgerflow.domain.categories import CategoryTable, default_category_table
from ledgerflow.domain.entities import Vendor
from ledgerflow.domain.errors import ConflictError, NotFoundError, ValidationError, company_not_found


class VendorService:
    """Service for managing the known-vendor table used by classification."""

    def __init__(self, db: Database, categories: Optional[CategoryTable] = None):
        """Initialize vendor service.

        Args:
            db: Database instance
            categories: Category vocabulary used to validate vendor categories
        """
        self.db = db
        self.categories = categories or default_category_table()

    def create_vendor(self, company_id: int, name: str, category: Optional[str] = None) -> int:
        """Register a known vendor.

        Args:
            company_id: Company ID
            name: Vendor name (unique per company, case-insensitive)
            category: Optional default category for the vendor's transactions

        Returns:
            Vendor ID

        Raises:
            NotFoundError: If the company doesn't exist
            ConflictError: If the vendor already exists
            ValidationError: If the name is empty or the category unknown
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        name = (name or "").strip()
        if not name:
            raise ValidationError("Vendor name is required")
        if category is not None:
            resolved = self.categories.resolve(category)
            if resolved is None:
                raise ValidationError(f"Unknown category '{category}'")
            category = resolved
        if self.db.get_vendor_by_name(company_id, name) is not None:
            raise ConflictError(f"Vendor '{name}' already exists for company {company_id}")
        return self.db.create_vendor(company_id, name, category)

    def get_vendor(self, company_id: int, name: str) -> Optional[Vendor]:
        return self.db.get_vendor_by_name(company_id, name)

    def list_vendors(self, company_id: int, active_only: bool = False) -> list[Vendor]:
        return self.db.list_vendors(company_id, active_only=active_only)

    def set_active(self, company_id: int, name: str, is_active: bool) -> None:
        """Activate or deactivate a vendor by name.

        Raises:
            NotFoundError: If the vendor doesn't exist
        """
        vendor = self.db.get_vendor_by_name(company_id, name)
        if vendor is None:
            raise NotFoundError(f"Vendor '{name}' not found")
        self.db.set_vendor_active(vendor.id, is_active)

    def deactivate(self, company_id: int, name: str) -> None:
        self.set_active(company_id, name, False)
