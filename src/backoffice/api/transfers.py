from fastapi import APIRouter, Depends

from backoffice.exceptions import PersistenceError, TransferError
from backoffice.logging_config import get_logger
from backoffice.store.base import AccountStore
from backoffice.transfers.accounts import lookup_recipient
from backoffice.transfers.engine import SenderRef, TransferEngine
from .deps import get_account_store, get_transfer_engine, require_admin
from .schemas import AdminTransferIn, CustomerTransferIn, RecipientLookupOut, TransferOut
from .serializers import serialize_transfer

logger = get_logger("backoffice.api.transfers")

router = APIRouter(tags=["transfers"])


async def _run_transfer(engine: TransferEngine, sender: SenderRef, recipient: str, amount, description):
    try:
        result = await engine.execute_transfer(sender, recipient, amount, description)
    except TransferError:
        # Rendered by the app-level handler with its status code
        raise
    except Exception as e:
        logger.exception("Transfer failed unexpectedly: %s", e)
        raise PersistenceError()
    return serialize_transfer(result)


@router.post("/customer/transfer", response_model=TransferOut)
async def customer_transfer(payload: CustomerTransferIn, engine: TransferEngine = Depends(get_transfer_engine)):
    """
    Transfer money from the customer's first active account to another account.
    """
    return await _run_transfer(
        engine,
        SenderRef(user_id=payload.user_id),
        payload.recipient_account_number,
        payload.amount,
        payload.description,
    )


@router.get("/customer/transfer", response_model=RecipientLookupOut, response_model_exclude_none=True)
async def search_recipient(accountNumber: str, store: AccountStore = Depends(get_account_store)):
    """
    Search for a recipient account by account number (holder name only).
    """
    info = await lookup_recipient(store, accountNumber)
    if info is None:
        return {"found": False, "message": "Account not found"}
    return {
        "found": True,
        "accountNumber": info.account_number,
        "accountType": info.account_type,
        "recipientName": info.recipient_name,
    }


@router.post("/admin/transfer", response_model=TransferOut, dependencies=[Depends(require_admin)])
async def admin_transfer(payload: AdminTransferIn, engine: TransferEngine = Depends(get_transfer_engine)):
    """
    Staff-initiated transfer between two account numbers.
    """
    return await _run_transfer(
        engine,
        SenderRef(account_number=payload.sender_account_number),
        payload.recipient_account_number,
        payload.amount,
        payload.description,
    )
