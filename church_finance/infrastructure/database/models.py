"""SQLAlchemy ORM models for the finance workflow"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(14, 2, asdecimal=True)


class BranchRow(Base):
    """Branch directory entry"""

    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False, unique=True)
    parent_branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    manager_user_id = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserRow(Base):
    """Authenticated user with raw role names"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(80), nullable=False, unique=True)
    person_id = Column(Integer, nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    roles = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AccountRow(Base):
    """Bank account owned by a person"""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    person_id = Column(Integer, nullable=False, index=True)
    alias = Column(String(100), nullable=True)
    bank_name = Column(Text, nullable=False)
    account_number = Column(Text, nullable=False)
    account_number_cci = Column(String(20), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class GlobalConfigRow(Base):
    """Singleton finance configuration"""

    __tablename__ = "global_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    max_amount_lead_approval = Column(MONEY, nullable=False)
    default_currency = Column(String(3), nullable=False)
    remainder_account_name = Column(Text, nullable=True)
    remainder_bank_name = Column(Text, nullable=True)
    remainder_account_number = Column(Text, nullable=True)
    remainder_notes = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class FinancialRequestRow(Base):
    """Financial request aggregate root"""

    __tablename__ = "financial_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    supervisor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    requester_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    currency = Column(String(3), nullable=False)
    cost_center_id = Column(Integer, nullable=True)
    total_amount = Column(MONEY, nullable=False)
    deposit_type = Column(String(20), nullable=False)
    own_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    bank_name = Column(Text, nullable=True)
    account_number = Column(Text, nullable=True)
    account_number_cci = Column(String(20), nullable=True)
    doc_type = Column(Text, nullable=True)
    doc_number = Column(Text, nullable=True)
    requires_lead_approval = Column(Boolean, nullable=False, default=False)
    current_status = Column(String(32), nullable=False, index=True)
    remainder_amount = Column(MONEY, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    items = relationship(
        "FinancialRequestItemRow",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="FinancialRequestItemRow.position",
    )
    history = relationship(
        "StatusHistoryRow",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="StatusHistoryRow.sequence",
    )


class FinancialRequestItemRow(Base):
    """Expense line of a request"""

    __tablename__ = "financial_request_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("financial_requests.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    description = Column(String(200), nullable=False)
    amount = Column(MONEY, nullable=False)

    request = relationship("FinancialRequestRow", back_populates="items")


class StatusHistoryRow(Base):
    """Append-only audit entry of a status change"""

    __tablename__ = "financial_request_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("financial_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    approved = Column(Boolean, nullable=False, default=True)
    rejection_reason = Column(String(300), nullable=True)
    evidence_urls = Column(JSON, nullable=False, default=list)
    metadata_json = Column("metadata", JSON, nullable=True)

    request = relationship("FinancialRequestRow", back_populates="history")
