"""Monthly profit-and-loss and cash-flow statements folded from ledger rows.

The folds are pure: they take the row feeds from ``accounting_store`` (already
filtered and ordered by period) and only add things up. Periods keep the
order in which they first appear in the input.
"""

from __future__ import annotations

import calendar
from collections import OrderedDict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.accounting_models import CASH_IN_LINE_TYPES
from ledgerdesk.accounting_store import CashFlowRow, PnlRow
from ledgerdesk.ledger import build_transaction_read
from ledgerdesk.schemas import (
    CashBalance,
    CashFlowAccountLine,
    CashFlowPeriod,
    CashFlowReport,
    DashboardResponse,
    ExpenseLine,
    PendingReimbursements,
    PnlPeriod,
    PnlReport,
)
from ledgerdesk.validation import fmt2

ZERO = Decimal("0")
HUNDRED = Decimal("100")
RECENT_TRANSACTIONS = 10


def margin_pct(numerator: Decimal, denominator: Decimal) -> str:
    if denominator == 0:
        return "0.00"
    return str((numerator / denominator * HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def profit_and_loss(rows: Iterable[PnlRow]) -> PnlReport:
    periods: "OrderedDict[str, Dict]" = OrderedDict()
    for period, line_type, account_code, account_name, amount in rows:
        bucket = periods.setdefault(period, {"sales": ZERO, "cogs": ZERO, "expenses": OrderedDict()})
        if line_type == "SALES":
            bucket["sales"] += amount
        elif line_type == "COGS":
            bucket["cogs"] += amount
        elif line_type == "EXPENSE":
            key = (account_code, account_name)
            bucket["expenses"][key] = bucket["expenses"].get(key, ZERO) + amount

    out: List[PnlPeriod] = []
    for period, bucket in periods.items():
        net_sales = bucket["sales"]
        gross_profit = net_sales - bucket["cogs"]
        expenses = [
            ExpenseLine(account_code=code, account_name=name, amount=fmt2(total))
            for (code, name), total in sorted(bucket["expenses"].items())
        ]
        total_expenses = sum(bucket["expenses"].values(), ZERO)
        net_profit = gross_profit - total_expenses
        out.append(
            PnlPeriod(
                period=period,
                net_sales=fmt2(net_sales),
                cogs=fmt2(bucket["cogs"]),
                gross_profit=fmt2(gross_profit),
                expenses=expenses,
                total_expenses=fmt2(total_expenses),
                net_profit=fmt2(net_profit),
                gross_margin_pct=margin_pct(gross_profit, net_sales),
                net_margin_pct=margin_pct(net_profit, net_sales),
            )
        )
    return PnlReport(periods=out)


def cash_flow(rows: Iterable[CashFlowRow]) -> CashFlowReport:
    periods: "OrderedDict[str, OrderedDict[Tuple[str, str], List[Decimal]]]" = OrderedDict()
    for period, code, name, cash_in, cash_out in rows:
        accounts = periods.setdefault(period, OrderedDict())
        totals = accounts.setdefault((code, name), [ZERO, ZERO])
        totals[0] += cash_in
        totals[1] += cash_out

    out: List[CashFlowPeriod] = []
    for period, accounts in periods.items():
        lines: List[CashFlowAccountLine] = []
        total_in, total_out = ZERO, ZERO
        for (code, name), (cash_in, cash_out) in accounts.items():
            lines.append(
                CashFlowAccountLine(
                    cash_account_code=code,
                    cash_account_name=name,
                    cash_in=fmt2(cash_in),
                    cash_out=fmt2(cash_out),
                    net=fmt2(cash_in - cash_out),
                )
            )
            total_in += cash_in
            total_out += cash_out
        out.append(
            CashFlowPeriod(
                period=period,
                accounts=lines,
                total_cash_in=fmt2(total_in),
                total_cash_out=fmt2(total_out),
                total_net=fmt2(total_in - total_out),
            )
        )
    return CashFlowReport(periods=out)


def pnl_report(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None, outlet_id: Optional[str] = None) -> PnlReport:
    return profit_and_loss(store.pnl_rows(db, start_date, end_date, outlet_id))


def cash_flow_report(
    db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None, outlet_id: Optional[str] = None
) -> CashFlowReport:
    return cash_flow(store.cash_flow_rows(db, start_date, end_date, outlet_id))


def _cash_balances(db: Session) -> List[CashBalance]:
    balances: "OrderedDict[str, List]" = OrderedDict()
    for cash_account, line_type, total in store.cash_balance_rows(db):
        entry = balances.setdefault(cash_account.id, [cash_account, ZERO])
        if line_type is None:
            continue
        amount = Decimal(str(total))
        entry[1] += amount if line_type in CASH_IN_LINE_TYPES else -amount
    return [
        CashBalance(
            cash_account_id=acct.id,
            cash_account_code=acct.cash_account_code,
            cash_account_name=acct.cash_account_name,
            balance=fmt2(balance),
        )
        for acct, balance in balances.values()
    ]


def build_dashboard(db: Session, today: Optional[date] = None) -> DashboardResponse:
    today = today or date.today()
    month_start = today.replace(day=1)
    month_end = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    monthly = pnl_report(db, month_start, month_end).periods

    count, total = store.pending_reimbursements(db)
    recent = store.list_transactions(db, limit=RECENT_TRANSACTIONS)
    return DashboardResponse(
        cash_balances=_cash_balances(db),
        monthly_pnl=monthly[0] if monthly else None,
        pending_reimbursements=PendingReimbursements(count=count, total_amount=fmt2(total)),
        recent_transactions=[build_transaction_read(t) for t in recent],
    )


__all__ = ["build_dashboard", "cash_flow", "cash_flow_report", "margin_pct", "pnl_report", "profit_and_loss"]
