from __future__ import annotations

import os
from typing import Any, Dict


def get_settings() -> Dict[str, Any]:
    allowed_raw = os.getenv("ALLOWED_ORIGINS", "*")
    allowed_list = [o.strip() for o in allowed_raw.split(",") if o.strip()]
    return {
        "database_url": os.getenv("DATABASE_URL", "sqlite:///./ledgerdesk.db"),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "allowed_origins": allowed_list,
        "allow_origin_regex": os.getenv("ALLOWED_ORIGIN_REGEX", None),
        # Account used for chat-intake lines that did not match an inventory item.
        "default_expense_account_code": os.getenv("DEFAULT_EXPENSE_ACCOUNT_CODE", "6100"),
        "inventory_account_code": os.getenv("INVENTORY_ACCOUNT_CODE", "1300"),
        "seed_demo_data": os.getenv("SEED_DEMO_DATA", "true").lower() == "true",
        "port": int(os.getenv("PORT", "8000")),
    }
