from __future__ import annotations

from ledgerdesk.db import SessionLocal
from ledgerdesk.db_models import AccountORM, CashAccountORM, ItemORM

DEMO_ACCOUNTS = [
    # code, name, type, line_type
    ("1100", "Kas & Bank", "Asset", "ASSET"),
    ("1300", "Persediaan Bahan Baku", "Asset", "INVENTORY"),
    ("3100", "Modal Pemilik", "Equity", "CAPITAL"),
    ("3200", "Prive", "Equity", "DRAWING"),
    ("4100", "Penjualan", "Revenue", "SALES"),
    ("5100", "Harga Pokok Penjualan", "Expense", "COGS"),
    ("6100", "Beban Operasional", "Expense", "EXPENSE"),
    ("6200", "Beban Gaji", "Expense", "EXPENSE"),
]

DEMO_CASH_ACCOUNTS = [
    # code, name, bank, ownership
    ("CASH-01", "Kas Outlet", None, "Business"),
    ("BCA-01", "BCA Operasional", "BCA", "Business"),
    ("QRIS-01", "QRIS Settlement", "BCA", "Business"),
]

DEMO_ITEMS = [
    # code, name, category, unit, keywords
    ("ITM-001", "Cabe Merah Tanjung", "Raw Material", "kg", "cabe,merah,tanjung"),
    ("ITM-002", "Cabe Merah Keriting", "Raw Material", "kg", "cabe,merah,keriting,kriting"),
    ("ITM-003", "Cabe Hijau", "Raw Material", "kg", "cabe,hijau"),
    ("ITM-004", "Bawang Merah", "Raw Material", "kg", "bawang,merah"),
    ("ITM-005", "Bawang Putih", "Raw Material", "kg", "bawang,putih"),
    ("ITM-006", "Beras Sania", "Raw Material", "kg", "beras,sania"),
    ("ITM-007", "Telur Ayam", "Raw Material", "btr", "telur,ayam"),
    ("ITM-008", "Minyak Goreng", "Raw Material", "l", "minyak,goreng"),
]


def seed_demo_data() -> None:
    """Seed a demo chart of accounts, cash accounts and catalog if they are missing."""
    with SessionLocal() as db:
        for code, name, account_type, line_type in DEMO_ACCOUNTS:
            if not db.query(AccountORM).filter(AccountORM.account_code == code).first():
                db.add(AccountORM(account_code=code, account_name=name, account_type=account_type, line_type=line_type))

        for code, name, bank, ownership in DEMO_CASH_ACCOUNTS:
            if not db.query(CashAccountORM).filter(CashAccountORM.cash_account_code == code).first():
                db.add(CashAccountORM(cash_account_code=code, cash_account_name=name, bank_name=bank, ownership=ownership))

        for code, name, category, unit, keywords in DEMO_ITEMS:
            if not db.query(ItemORM).filter(ItemORM.item_code == code).first():
                db.add(ItemORM(item_code=code, item_name=name, item_category=category, unit=unit, keywords=keywords))
        db.commit()
