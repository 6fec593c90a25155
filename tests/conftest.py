"""Pytest configuration and fixtures."""

import os
import tempfile

# Must be set before backoffice modules are imported: settings are cached and
# the engine/log directory are created at import time.
_TMP = tempfile.mkdtemp(prefix="backoffice-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(_TMP, 'app.db')}")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")

from decimal import Decimal  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from backoffice.models import Account, AccountStatus, User  # noqa: E402
from backoffice.store.memory import InMemoryAccountStore  # noqa: E402
from backoffice.transfers.engine import TransferEngine  # noqa: E402


async def add_holder(
    store,
    name: str,
    balance: str,
    account_number: str,
    status: AccountStatus = AccountStatus.ACTIVE,
) -> Account:
    """Create a user with one account holding ``balance``."""
    user = await store.create_user(User(user_id=uuid4(), full_name=name))
    return await store.create_account(
        Account(
            account_id=uuid4(),
            user_id=user.user_id,
            account_number=account_number,
            balance=Decimal(balance),
            status=status,
        )
    )


@pytest.fixture
def make_holder():
    """Factory for funded account holders."""
    return add_holder


@pytest.fixture
def admin_token() -> str:
    return "test-admin-token"


@pytest.fixture
def store() -> InMemoryAccountStore:
    """Create a fresh store for each test."""
    return InMemoryAccountStore()


@pytest_asyncio.fixture
async def alice(store) -> Account:
    return await add_holder(store, "Alice Adams", "500.00", "ACC-1700000000001-ALICE1")


@pytest_asyncio.fixture
async def bob(store) -> Account:
    return await add_holder(store, "Bob Brown", "100.00", "ACC-1700000000002-BOB002")


@pytest.fixture
def engine(store) -> TransferEngine:
    return TransferEngine(store, min_amount=Decimal("1.00"), conflict_retries=3)
