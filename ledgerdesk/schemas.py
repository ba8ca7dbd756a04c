from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# Request bodies keep money, quantities and dates as strings; the flow modules
# parse and validate them so every problem surfaces as a field-named 400.


# --- chat intake ---


class IntakeMessageRequest(BaseModel):
    sender_phone: Optional[str] = None
    sender_name: Optional[str] = None
    message_text: Optional[str] = None
    chat_id: Optional[str] = None


class IntakeResponse(BaseModel):
    ok: bool
    reply: str
    created: int = 0
    matched: int = 0
    ambiguous: int = 0
    unmatched: int = 0
    expense_date: Optional[date] = None
    error: Optional[str] = None
    error_line: Optional[int] = None


# --- reimbursements ---


class ReimbursementCreate(BaseModel):
    expense_date: Optional[str] = None
    item_id: Optional[str] = None
    description: Optional[str] = None
    qty: Optional[str] = None
    unit_price: Optional[str] = None
    amount: Optional[str] = None
    line_type: Optional[str] = None
    account_id: Optional[str] = None
    status: Optional[str] = None
    requester: Optional[str] = None
    receipt_link: Optional[str] = None


class ReimbursementUpdate(BaseModel):
    expense_date: Optional[str] = None
    item_id: Optional[str] = None
    description: Optional[str] = None
    qty: Optional[str] = None
    unit_price: Optional[str] = None
    amount: Optional[str] = None
    line_type: Optional[str] = None
    account_id: Optional[str] = None
    requester: Optional[str] = None
    receipt_link: Optional[str] = None


class ReimbursementRead(BaseModel):
    id: str
    batch_id: Optional[str] = None
    expense_date: date
    item_id: Optional[str] = None
    description: str
    qty: str
    unit_price: str
    amount: str
    line_type: str
    account_id: str
    status: str
    requester: str
    receipt_link: Optional[str] = None
    posted_at: Optional[datetime] = None
    created_at: datetime


class AssignBatchRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class AssignBatchResponse(BaseModel):
    batch_id: str
    updated: int


class PostBatchRequest(BaseModel):
    batch_id: Optional[str] = None
    payment_date: Optional[str] = None
    cash_account_id: Optional[str] = None


class PostingResponse(BaseModel):
    posted_count: int
    transaction_codes: List[str] = Field(default_factory=list)


# --- sales ---


class SalesSummaryCreate(BaseModel):
    sales_date: Optional[str] = None
    channel: Optional[str] = None
    payment_method: Optional[str] = None
    gross_sales: Optional[str] = None
    discount_amount: Optional[str] = None
    net_sales: Optional[str] = None
    cash_account_id: Optional[str] = None
    outlet_id: Optional[str] = None


class SalesSummaryUpdate(SalesSummaryCreate):
    pass


class SalesSummaryRead(BaseModel):
    id: str
    sales_date: date
    channel: str
    payment_method: str
    gross_sales: str
    discount_amount: str
    net_sales: str
    cash_account_id: str
    outlet_id: Optional[str] = None
    source: str
    posted_at: Optional[datetime] = None
    created_at: datetime


class SyncPosRequest(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    outlet_id: Optional[str] = None
    payment_method_accounts: Dict[str, str] = Field(default_factory=dict)


class SyncPosResponse(BaseModel):
    synced: int
    skipped_posted: int
    summaries: List[SalesSummaryRead] = Field(default_factory=list)


class PostSalesRequest(BaseModel):
    sales_date: Optional[str] = None
    account_id: Optional[str] = None
    outlet_id: Optional[str] = None


# --- payroll ---


class PayrollEmployeeInput(BaseModel):
    employee_name: Optional[str] = None
    gross_pay: Optional[str] = None
    payment_method: Optional[str] = None


class PayrollBatchCreate(BaseModel):
    payroll_date: Optional[str] = None
    period_type: Optional[str] = None
    period_ref: Optional[str] = None
    cash_account_id: Optional[str] = None
    outlet_id: Optional[str] = None
    employees: List[PayrollEmployeeInput] = Field(default_factory=list)


class PayrollEntryUpdate(BaseModel):
    payroll_date: Optional[str] = None
    period_type: Optional[str] = None
    period_ref: Optional[str] = None
    employee_name: Optional[str] = None
    gross_pay: Optional[str] = None
    payment_method: Optional[str] = None
    cash_account_id: Optional[str] = None
    outlet_id: Optional[str] = None


class PayrollEntryRead(BaseModel):
    id: str
    payroll_date: date
    period_type: str
    period_ref: Optional[str] = None
    employee_name: str
    gross_pay: str
    payment_method: str
    cash_account_id: str
    outlet_id: Optional[str] = None
    posted_at: Optional[datetime] = None
    created_at: datetime


class PostPayrollRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)
    account_id: Optional[str] = None


# --- ledger ---


class TransactionCreate(BaseModel):
    transaction_date: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[str] = None
    unit_price: Optional[str] = None
    line_type: Optional[str] = None
    account_id: Optional[str] = None
    cash_account_id: Optional[str] = None
    outlet_id: Optional[str] = None
    item_id: Optional[str] = None


class TransactionRead(BaseModel):
    id: str
    transaction_code: str
    transaction_date: date
    item_id: Optional[str] = None
    description: str
    quantity: str
    unit_price: str
    amount: str
    line_type: str
    account_id: str
    cash_account_id: Optional[str] = None
    outlet_id: Optional[str] = None
    reimbursement_batch_id: Optional[str] = None
    created_at: datetime


class PurchaseItemInput(BaseModel):
    item_id: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[str] = None
    unit_price: Optional[str] = None


class PurchaseCreate(BaseModel):
    transaction_date: Optional[str] = None
    account_id: Optional[str] = None
    cash_account_id: Optional[str] = None
    outlet_id: Optional[str] = None
    items: List[PurchaseItemInput] = Field(default_factory=list)


class PurchaseResponse(BaseModel):
    transactions: List[TransactionRead] = Field(default_factory=list)


# --- reports ---


class ExpenseLine(BaseModel):
    account_code: str
    account_name: str
    amount: str


class PnlPeriod(BaseModel):
    period: str
    net_sales: str
    cogs: str
    gross_profit: str
    expenses: List[ExpenseLine] = Field(default_factory=list)
    total_expenses: str
    net_profit: str
    gross_margin_pct: str
    net_margin_pct: str


class PnlReport(BaseModel):
    periods: List[PnlPeriod] = Field(default_factory=list)


class CashFlowAccountLine(BaseModel):
    cash_account_code: str
    cash_account_name: str
    cash_in: str
    cash_out: str
    net: str


class CashFlowPeriod(BaseModel):
    period: str
    accounts: List[CashFlowAccountLine] = Field(default_factory=list)
    total_cash_in: str
    total_cash_out: str
    total_net: str


class CashFlowReport(BaseModel):
    periods: List[CashFlowPeriod] = Field(default_factory=list)


class CashBalance(BaseModel):
    cash_account_id: str
    cash_account_code: str
    cash_account_name: str
    balance: str


class PendingReimbursements(BaseModel):
    count: int
    total_amount: str


class DashboardResponse(BaseModel):
    cash_balances: List[CashBalance] = Field(default_factory=list)
    monthly_pnl: Optional[PnlPeriod] = None
    pending_reimbursements: PendingReimbursements
    recent_transactions: List[TransactionRead] = Field(default_factory=list)


# --- master data ---


class AccountRead(BaseModel):
    id: str
    account_code: str
    account_name: str
    account_type: str
    line_type: str
    is_active: bool


class CashAccountRead(BaseModel):
    id: str
    cash_account_code: str
    cash_account_name: str
    bank_name: Optional[str] = None
    ownership: str
    is_active: bool


class ItemRead(BaseModel):
    id: str
    item_code: str
    item_name: str
    item_category: str
    unit: str
    keywords: str
    last_price: Optional[str] = None
    is_active: bool
