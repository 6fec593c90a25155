from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from backoffice.logging_config import get_logger
from backoffice.store.base import AccountStore
from backoffice.transfers.accounts import open_account
from .deps import get_account_store, require_admin
from .schemas import AccountOut, OpenAccountIn, ReconciliationOut, TransactionOut
from .serializers import serialize_account, serialize_reconciliation, serialize_tx

logger = get_logger("backoffice.api.accounts")

router = APIRouter(tags=["accounts"])


async def _account_or_404(store: AccountStore, account_number: str):
    acct_num = account_number.strip()
    account = await store.get_account_by_number(acct_num)
    if account is None:
        logger.warning("Account not found: %s", acct_num)
        raise HTTPException(status_code=404, detail="Account not found")
    return account


@router.get("/accounts/{account_number}", response_model=AccountOut)
async def get_account(account_number: str, store: AccountStore = Depends(get_account_store)):
    """
    Fetch a single account by account_number.
    """
    return serialize_account(await _account_or_404(store, account_number))


@router.get("/accounts/{account_number}/transactions", response_model=List[TransactionOut])
async def get_account_transactions(
    account_number: str, limit: int = 20, store: AccountStore = Depends(get_account_store)
):
    """
    Return recent transactions for an account, newest first.
    """
    logger.info("Fetching transactions for account_number=%s limit=%s", account_number, limit)
    account = await _account_or_404(store, account_number)
    txs = await store.list_transactions(account.account_id, limit=max(1, min(limit, 200)))
    return [serialize_tx(t) for t in txs]


@router.post(
    "/admin/accounts",
    response_model=AccountOut,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_account(payload: OpenAccountIn, store: AccountStore = Depends(get_account_store)):
    """
    Open an account, creating the holder too when no userId is given.
    """
    account = await open_account(
        store,
        user_id=payload.user_id,
        full_name=payload.full_name,
        email=payload.email,
        account_type=payload.account_type,
        initial_deposit=payload.initial_deposit,
        currency=payload.currency,
    )
    return serialize_account(account)


@router.get(
    "/admin/reconciliation",
    response_model=List[ReconciliationOut],
    dependencies=[Depends(require_admin)],
)
async def list_reconciliation(status: Optional[str] = "open", store: AccountStore = Depends(get_account_store)):
    """
    Partially applied transfers waiting for manual review.
    """
    items = await store.list_reconciliation(status=None if status == "all" else status)
    return [serialize_reconciliation(i) for i in items]
