from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.types import TypeDecorator

from ledgerdesk.db import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


class Money(TypeDecorator):
    """Numeric column that always round-trips as a quantized Decimal."""

    impl = Numeric
    cache_ok = True

    def __init__(self, scale: int = 2):
        super().__init__(precision=18, scale=scale, asdecimal=True)
        self.scale = scale
        self.quantum = Decimal(1).scaleb(-scale)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(self.quantum)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(self.quantum)


# --- master data (owned outside the core, read-only here) ---


class AccountORM(Base):
    __tablename__ = "acct_accounts"

    id = Column(String, primary_key=True, default=_uuid_str)
    account_code = Column(String(10), nullable=False, unique=True)
    account_name = Column(String(100), nullable=False)
    account_type = Column(String(20), nullable=False)
    line_type = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CashAccountORM(Base):
    __tablename__ = "acct_cash_accounts"

    id = Column(String, primary_key=True, default=_uuid_str)
    cash_account_code = Column(String(20), nullable=False, unique=True)
    cash_account_name = Column(String(100), nullable=False)
    bank_name = Column(String(50), nullable=True)
    ownership = Column(String(20), nullable=False, default="Business")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ItemORM(Base):
    __tablename__ = "acct_items"

    id = Column(String, primary_key=True, default=_uuid_str)
    item_code = Column(String(20), nullable=False, unique=True)
    item_name = Column(String(100), nullable=False)
    item_category = Column(String(30), nullable=False, default="Raw Material")
    unit = Column(String(10), nullable=False)
    keywords = Column(Text, nullable=False, default="")
    # Unit price of the latest purchase entry for this item.
    last_price = Column(Money(6), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# --- draft ledger sources ---


class ReimbursementORM(Base):
    __tablename__ = "acct_reimbursement_requests"

    id = Column(String, primary_key=True, default=_uuid_str)
    batch_id = Column(String(30), nullable=True, index=True)
    expense_date = Column(Date, nullable=False)
    item_id = Column(String, ForeignKey("acct_items.id"), nullable=True)
    description = Column(Text, nullable=False)
    qty = Column(Money(4), nullable=False, default=Decimal("1"))
    unit_price = Column(Money(6), nullable=False)
    amount = Column(Money(2), nullable=False)
    line_type = Column(String(20), nullable=False)
    account_id = Column(String, ForeignKey("acct_accounts.id"), nullable=False)
    status = Column(String(10), nullable=False, default="Draft", index=True)
    requester = Column(String(100), nullable=False)
    receipt_link = Column(Text, nullable=True)
    posted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class SalesSummaryORM(Base):
    __tablename__ = "acct_sales_daily_summaries"
    __table_args__ = (UniqueConstraint("sales_date", "channel", "payment_method", "outlet_id"),)

    id = Column(String, primary_key=True, default=_uuid_str)
    sales_date = Column(Date, nullable=False, index=True)
    channel = Column(String(30), nullable=False)
    payment_method = Column(String(30), nullable=False)
    gross_sales = Column(Money(2), nullable=False)
    discount_amount = Column(Money(2), nullable=False, default=Decimal("0"))
    net_sales = Column(Money(2), nullable=False)
    cash_account_id = Column(String, ForeignKey("acct_cash_accounts.id"), nullable=False)
    outlet_id = Column(String, nullable=True)
    source = Column(String(10), nullable=False, default="manual")
    posted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class PayrollEntryORM(Base):
    __tablename__ = "acct_payroll_entries"

    id = Column(String, primary_key=True, default=_uuid_str)
    payroll_date = Column(Date, nullable=False, index=True)
    period_type = Column(String(10), nullable=False)
    period_ref = Column(String(30), nullable=True)
    employee_name = Column(String(100), nullable=False)
    gross_pay = Column(Money(2), nullable=False)
    payment_method = Column(String(20), nullable=False)
    cash_account_id = Column(String, ForeignKey("acct_cash_accounts.id"), nullable=False)
    outlet_id = Column(String, nullable=True)
    posted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# --- immutable ledger ---


class CashTransactionORM(Base):
    __tablename__ = "acct_cash_transactions"

    id = Column(String, primary_key=True, default=_uuid_str)
    transaction_code = Column(String(20), nullable=False, unique=True)
    transaction_date = Column(Date, nullable=False, index=True)
    item_id = Column(String, ForeignKey("acct_items.id"), nullable=True, index=True)
    description = Column(Text, nullable=False)
    quantity = Column(Money(4), nullable=False, default=Decimal("1"))
    unit_price = Column(Money(6), nullable=False)
    amount = Column(Money(2), nullable=False)
    line_type = Column(String(20), nullable=False, index=True)
    account_id = Column(String, ForeignKey("acct_accounts.id"), nullable=False, index=True)
    cash_account_id = Column(String, ForeignKey("acct_cash_accounts.id"), nullable=True, index=True)
    outlet_id = Column(String, nullable=True, index=True)
    reimbursement_batch_id = Column(String(30), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# --- point-of-sale source (written by the POS, read by the sales sync) ---


class PosOrderORM(Base):
    __tablename__ = "pos_orders"

    id = Column(String, primary_key=True, default=_uuid_str)
    outlet_id = Column(String, nullable=False, index=True)
    order_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="COMPLETED")
    completed_at = Column(DateTime, nullable=True)


class PosPaymentORM(Base):
    __tablename__ = "pos_payments"

    id = Column(String, primary_key=True, default=_uuid_str)
    order_id = Column(String, ForeignKey("pos_orders.id"), nullable=False, index=True)
    payment_method = Column(String(30), nullable=False)
    amount = Column(Money(2), nullable=False)
    status = Column(String(20), nullable=False, default="COMPLETED")


Index("ix_pos_orders_outlet_completed", PosOrderORM.outlet_id, PosOrderORM.completed_at)
