"""Chat expense intake, draft-to-ledger posting and cash reports."""

__version__ = "0.1.0"
