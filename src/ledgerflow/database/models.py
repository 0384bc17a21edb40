"""SQLAlchemy models for ledgerflow database."""

from datetime import datetime, date, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)


class Company(Base):
    """Company owning a set of books."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship("BookTransaction", back_populates="company", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="company", cascade="all, delete-orphan")
    bills = relationship("Bill", back_populates="company", cascade="all, delete-orphan")
    vendors = relationship("Vendor", back_populates="company", cascade="all, delete-orphan")
    accounts = relationship("AccountingAccount", back_populates="company", cascade="all, delete-orphan")


class BookTransaction(Base):
    """Book transaction model. Amount is signed: credits positive, debits negative."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    unique_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(String, nullable=True)
    category = Column(String, nullable=True)
    counterparty_name = Column(String, nullable=True)
    expense_type = Column(String, default="one-time", nullable=False)
    frequency = Column(String, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String, default="active", nullable=False)
    is_reconciled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Unique constraint on company_id + unique_id
    __table_args__ = (UniqueConstraint("company_id", "unique_id", name="uq_company_unique_id"),)

    # Relationships
    company = relationship("Company", back_populates="transactions")


class Invoice(Base):
    """Customer invoice model."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    number = Column(String, nullable=False)
    counterparty_name = Column(String, nullable=False)
    total_amount = Column(MONEY, nullable=False)
    paid_amount = Column(MONEY, default=0, nullable=False)
    balance_amount = Column(MONEY, nullable=False)
    status = Column(String, default="pending", nullable=False)
    issue_date = Column(Date, default=date.today, nullable=False)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "number", name="uq_invoice_number"),)

    # Relationships
    company = relationship("Company", back_populates="invoices")


class Bill(Base):
    """Vendor bill model."""

    __tablename__ = "bills"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    number = Column(String, nullable=False)
    counterparty_name = Column(String, nullable=False)
    total_amount = Column(MONEY, nullable=False)
    paid_amount = Column(MONEY, default=0, nullable=False)
    balance_amount = Column(MONEY, nullable=False)
    status = Column(String, default="unpaid", nullable=False)
    issue_date = Column(Date, default=date.today, nullable=False)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "number", name="uq_bill_number"),)

    # Relationships
    company = relationship("Company", back_populates="bills")


class Vendor(Base):
    """Known vendor model."""

    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "name", name="uq_vendor_name"),)

    # Relationships
    company = relationship("Company", back_populates="vendors")


class AccountingAccount(Base):
    """Chart-of-accounts entry with running balance."""

    __tablename__ = "accounting_accounts"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    balance = Column(MONEY, default=0, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "code", name="uq_account_code"),)

    # Relationships
    company = relationship("Company", back_populates="accounts")
    journal_entries = relationship("JournalEntry", back_populates="account")


class JournalEntry(Base):
    """One side of a double-entry posting."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounting_accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    debit = Column(MONEY, default=0, nullable=False)
    credit = Column(MONEY, default=0, nullable=False)
    description = Column(String, nullable=False)
    linked_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    reference = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    account = relationship("AccountingAccount", back_populates="journal_entries")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
