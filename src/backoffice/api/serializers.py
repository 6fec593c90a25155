from typing import Any, Dict

from backoffice.models import Account, ReconciliationItem, Transaction
from backoffice.transfers.engine import TransferResult


def serialize_account(a: Account) -> Dict[str, Any]:
    return {
        "account_id": str(a.account_id),
        "account_number": a.account_number,
        "user_id": str(a.user_id),
        "account_type": a.account_type.value,
        "currency": a.currency,
        "balance": float(a.balance) if a.balance is not None else 0.0,
        "status": a.status.value,
        "created_at": a.created_at.isoformat() if a.created_at else None,
        "updated_at": a.updated_at.isoformat() if a.updated_at else None,
    }


def serialize_tx(t: Transaction) -> Dict[str, Any]:
    return {
        "transaction_id": str(t.transaction_id),
        "reference_number": t.reference_number,
        "account_id": str(t.account_id),
        "entry_type": t.entry_type.value,
        "transaction_type": t.transaction_type.value,
        "amount": float(t.amount),
        "balance_after": float(t.balance_after) if t.balance_after is not None else None,
        "status": t.status.value,
        "description": t.description,
        "counterparty_account_id": str(t.counterparty_account_id) if t.counterparty_account_id else None,
        "metadata": t.metadata or {},
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def serialize_reconciliation(r: ReconciliationItem) -> Dict[str, Any]:
    return {
        "item_id": str(r.item_id),
        "reference_number": r.reference_number,
        "reason": r.reason.value,
        "account_id": str(r.account_id) if r.account_id else None,
        "details": r.details or {},
        "status": r.status,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


def serialize_transfer(result: TransferResult) -> Dict[str, Any]:
    return {
        "success": True,
        "message": "Transfer completed successfully",
        "referenceNumber": result.reference_number,
        "amount": float(result.amount),
        "recipient": result.recipient_name or result.recipient_account_number,
        "recipientAccount": result.recipient_account_number,
        "balances": {
            "sender": float(result.sender_new_balance),
            "recipient": float(result.recipient_new_balance),
        },
    }
