"""Daily sales summaries: synced from the POS or entered by hand, then posted as SALES lines."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.db_models import CashTransactionORM, SalesSummaryORM
from ledgerdesk.errors import ConflictError, NotFoundError, ValidationError
from ledgerdesk.posting import DraftLedgerSource, PostingResult, post_drafts
from ledgerdesk.schemas import SalesSummaryCreate, SalesSummaryUpdate
from ledgerdesk.validation import optional_text, parse_date_field, parse_decimal_field, require_text, round_money

logger = logging.getLogger("ledgerdesk.sales")

SOURCE_POS = "pos"
SOURCE_MANUAL = "manual"

ORDER_TYPE_CHANNELS = {
    "DINE_IN": "Dine In",
    "TAKEAWAY": "Take Away",
    "CATERING": "Catering",
    "DELIVERY": "Delivery",
}

NOT_FOUND = "sales summary not found, not manual, or already posted"


def order_type_to_channel(order_type: str) -> str:
    return ORDER_TYPE_CHANNELS.get(order_type, order_type)


def _find_by_key(
    db: Session, sales_date: date, channel: str, payment_method: str, outlet_id: Optional[str]
) -> Optional[SalesSummaryORM]:
    query = db.query(SalesSummaryORM).filter(
        SalesSummaryORM.sales_date == sales_date,
        SalesSummaryORM.channel == channel,
        SalesSummaryORM.payment_method == payment_method,
    )
    # NULL never equals NULL in SQL, so the unique constraint cannot see outlet-less duplicates.
    if outlet_id is None:
        query = query.filter(SalesSummaryORM.outlet_id.is_(None))
    else:
        query = query.filter(SalesSummaryORM.outlet_id == outlet_id)
    return query.first()


def _sales_amounts(gross_raw, discount_raw, net_raw) -> Tuple[Decimal, Decimal, Decimal]:
    gross = round_money(parse_decimal_field(gross_raw, "gross_sales"))
    discount = parse_decimal_field(discount_raw, "discount_amount", required=False)
    discount = round_money(discount) if discount is not None else Decimal("0.00")
    if gross < 0:
        raise ValidationError("gross_sales must not be negative", field="gross_sales")
    if discount < 0 or discount > gross:
        raise ValidationError("discount_amount must be between 0 and gross_sales", field="discount_amount")
    net = gross - discount
    given_net = parse_decimal_field(net_raw, "net_sales", required=False)
    if given_net is not None and round_money(given_net) != net:
        raise ValidationError(f"net_sales must equal gross_sales - discount_amount ({net})", field="net_sales")
    return gross, discount, net


def _commit_unique(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("a sales summary already exists for this date, channel, payment method and outlet") from exc


# --- manual summaries ---


def list_sales(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    outlet_id: Optional[str] = None,
    source: Optional[str] = None,
    posted: Optional[bool] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[SalesSummaryORM]:
    query = db.query(SalesSummaryORM)
    if start_date:
        query = query.filter(SalesSummaryORM.sales_date >= start_date)
    if end_date:
        query = query.filter(SalesSummaryORM.sales_date <= end_date)
    if outlet_id:
        query = query.filter(SalesSummaryORM.outlet_id == outlet_id)
    if source:
        query = query.filter(SalesSummaryORM.source == source)
    if posted is True:
        query = query.filter(SalesSummaryORM.posted_at.isnot(None))
    elif posted is False:
        query = query.filter(SalesSummaryORM.posted_at.is_(None))
    query = query.order_by(
        SalesSummaryORM.sales_date.desc(), SalesSummaryORM.channel, SalesSummaryORM.payment_method
    )
    return store.paginate(query, limit, offset)


def get_sales_summary(db: Session, summary_id: str) -> SalesSummaryORM:
    row = db.get(SalesSummaryORM, summary_id)
    if row is None:
        raise NotFoundError("sales summary not found")
    return row


def _get_editable(db: Session, summary_id: str) -> SalesSummaryORM:
    row = db.get(SalesSummaryORM, summary_id)
    if row is None or row.source != SOURCE_MANUAL or row.posted_at is not None:
        raise NotFoundError(NOT_FOUND)
    return row


def create_sales_summary(db: Session, data: SalesSummaryCreate) -> SalesSummaryORM:
    sales_date = parse_date_field(data.sales_date, "sales_date")
    channel = require_text(data.channel, "channel")
    payment_method = require_text(data.payment_method, "payment_method")
    gross, discount, net = _sales_amounts(data.gross_sales, data.discount_amount, data.net_sales)
    cash_account = store.require_cash_account(db, require_text(data.cash_account_id, "cash_account_id"))
    outlet_id = optional_text(data.outlet_id)

    if _find_by_key(db, sales_date, channel, payment_method, outlet_id) is not None:
        raise ConflictError("a sales summary already exists for this date, channel, payment method and outlet")

    row = SalesSummaryORM(
        sales_date=sales_date,
        channel=channel,
        payment_method=payment_method,
        gross_sales=gross,
        discount_amount=discount,
        net_sales=net,
        cash_account_id=cash_account.id,
        outlet_id=outlet_id,
        source=SOURCE_MANUAL,
    )
    db.add(row)
    _commit_unique(db)
    db.refresh(row)
    return row


def update_sales_summary(db: Session, summary_id: str, data: SalesSummaryUpdate) -> SalesSummaryORM:
    row = _get_editable(db, summary_id)

    sales_date = parse_date_field(data.sales_date, "sales_date") if data.sales_date is not None else row.sales_date
    channel = require_text(data.channel, "channel") if data.channel is not None else row.channel
    payment_method = (
        require_text(data.payment_method, "payment_method") if data.payment_method is not None else row.payment_method
    )
    outlet_id = optional_text(data.outlet_id) if data.outlet_id is not None else row.outlet_id

    clash = _find_by_key(db, sales_date, channel, payment_method, outlet_id)
    if clash is not None and clash.id != row.id:
        raise ConflictError("a sales summary already exists for this date, channel, payment method and outlet")

    if data.gross_sales is not None or data.discount_amount is not None or data.net_sales is not None:
        gross_raw = data.gross_sales if data.gross_sales is not None else row.gross_sales
        discount_raw = data.discount_amount if data.discount_amount is not None else row.discount_amount
        row.gross_sales, row.discount_amount, row.net_sales = _sales_amounts(gross_raw, discount_raw, data.net_sales)
    if data.cash_account_id is not None:
        row.cash_account_id = store.require_cash_account(db, data.cash_account_id).id

    row.sales_date = sales_date
    row.channel = channel
    row.payment_method = payment_method
    row.outlet_id = outlet_id
    _commit_unique(db)
    db.refresh(row)
    return row


def delete_sales_summary(db: Session, summary_id: str) -> None:
    row = _get_editable(db, summary_id)
    db.delete(row)
    db.commit()


# --- POS sync ---


def sync_pos_sales(
    db: Session,
    start_date,
    end_date,
    outlet_id: Optional[str],
    payment_method_accounts: Dict[str, str],
) -> Tuple[List[SalesSummaryORM], int]:
    """Aggregate completed POS payments into ``pos`` summaries.

    Returns the summaries written and the number of keys skipped because their
    summary is already posted. Running it twice over the same window converges
    on the same rows.
    """
    start = parse_date_field(start_date, "start_date")
    end = parse_date_field(end_date, "end_date")
    if end < start:
        raise ValidationError("end_date must not be before start_date", field="end_date")
    outlet_id = require_text(outlet_id, "outlet_id")
    if not payment_method_accounts:
        raise ValidationError("payment_method_accounts is required", field="payment_method_accounts")
    for method, cash_account_id in payment_method_accounts.items():
        store.require_cash_account(db, cash_account_id, field=f"payment_method_accounts.{method}")

    totals = store.pos_payment_totals(db, start, end, outlet_id)
    for _, _, method in totals:
        if method not in payment_method_accounts:
            raise ValidationError(
                f"no cash account mapping for payment method {method}", field="payment_method_accounts"
            )

    written: List[SalesSummaryORM] = []
    skipped = 0
    for (sales_date, order_type, method), amount in sorted(totals.items()):
        channel = order_type_to_channel(order_type)
        gross = round_money(amount)
        row = _find_by_key(db, sales_date, channel, method, outlet_id)
        if row is not None and row.posted_at is not None:
            skipped += 1
            continue
        if row is None:
            row = SalesSummaryORM(sales_date=sales_date, channel=channel, payment_method=method, outlet_id=outlet_id)
            db.add(row)
        row.gross_sales = gross
        row.discount_amount = Decimal("0.00")
        row.net_sales = gross
        row.cash_account_id = payment_method_accounts[method]
        row.source = SOURCE_POS
        written.append(row)

    db.commit()
    for row in written:
        db.refresh(row)
    logger.info(
        "POS sync outlet=%s %s..%s: %d summaries written, %d already posted",
        outlet_id,
        start,
        end,
        len(written),
        skipped,
    )
    return written, skipped


# --- posting ---


class SalesSource(DraftLedgerSource):
    name = "sales"

    def __init__(self, sales_date: date, account_id: str, outlet_id: Optional[str] = None):
        self.sales_date = sales_date
        self.account_id = account_id
        self.outlet_id = outlet_id

    def select_postable(self, db: Session) -> List[SalesSummaryORM]:
        query = db.query(SalesSummaryORM).filter(
            SalesSummaryORM.sales_date == self.sales_date,
            SalesSummaryORM.posted_at.is_(None),
        )
        if self.outlet_id:
            query = query.filter(SalesSummaryORM.outlet_id == self.outlet_id)
        return query.order_by(SalesSummaryORM.channel, SalesSummaryORM.payment_method).all()

    def to_transaction(self, row: SalesSummaryORM, code: str) -> CashTransactionORM:
        return CashTransactionORM(
            transaction_code=code,
            transaction_date=row.sales_date,
            description=f"Penjualan {row.channel} {row.payment_method} {row.sales_date.isoformat()}",
            quantity=Decimal("1"),
            unit_price=row.net_sales,
            amount=row.net_sales,
            line_type="SALES",
            account_id=self.account_id,
            cash_account_id=row.cash_account_id,
            outlet_id=row.outlet_id,
        )


def post_sales(db: Session, sales_date, account_id: Optional[str], outlet_id: Optional[str] = None) -> PostingResult:
    sales_date = parse_date_field(sales_date, "sales_date")
    account = store.require_account(db, require_text(account_id, "account_id"))
    return post_drafts(db, SalesSource(sales_date, account.id, optional_text(outlet_id)))


__all__ = [
    "ORDER_TYPE_CHANNELS",
    "SalesSource",
    "create_sales_summary",
    "delete_sales_summary",
    "get_sales_summary",
    "list_sales",
    "order_type_to_channel",
    "post_sales",
    "sync_pos_sales",
    "update_sales_summary",
]
