"""Funds transfers and the account operations around them."""

from backoffice.transfers.accounts import RecipientInfo, lookup_recipient, open_account
from backoffice.transfers.engine import SenderRef, TransferEngine, TransferResult
from backoffice.transfers.limits import DEFAULT_LIMITS, TransferLimitGuard, TransferLimits

__all__ = [
    "DEFAULT_LIMITS",
    "RecipientInfo",
    "SenderRef",
    "TransferEngine",
    "TransferLimitGuard",
    "TransferLimits",
    "TransferResult",
    "lookup_recipient",
    "open_account",
]
