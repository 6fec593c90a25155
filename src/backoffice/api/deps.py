import secrets
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException

from backoffice.config import get_settings
from backoffice.db.session import AsyncSessionLocal
from backoffice.logging_config import get_logger
from backoffice.store.base import AccountStore
from backoffice.store.sql import SqlAlchemyAccountStore
from backoffice.transfers.engine import TransferEngine
from backoffice.transfers.limits import TransferLimitGuard

logger = get_logger("backoffice.api.deps")


async def get_db() -> AsyncGenerator:
    """
    Async DB session dependency for FastAPI routes.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def get_account_store(db=Depends(get_db)) -> AccountStore:
    return SqlAlchemyAccountStore(db)


async def get_transfer_engine(store: AccountStore = Depends(get_account_store)) -> TransferEngine:
    settings = get_settings()
    return TransferEngine(
        store,
        min_amount=settings.min_transfer_amount,
        conflict_retries=settings.transfer_conflict_retries,
        limit_guard=TransferLimitGuard(store) if settings.enforce_transfer_limits else None,
    )


async def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    """
    Shared-token guard for staff endpoints (ADMIN_TOKEN in environment).

    With no token configured every admin request is refused.
    """
    expected = get_settings().admin_token
    if not expected:
        logger.error("Admin endpoint called but ADMIN_TOKEN is not configured")
        raise HTTPException(status_code=401, detail="Unauthorized")
    if x_admin_token is None or not secrets.compare_digest(x_admin_token.encode(), expected.encode()):
        logger.warning("Admin endpoint unauthorized attempt")
        raise HTTPException(status_code=401, detail="Unauthorized")
