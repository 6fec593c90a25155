from sqlalchemy import JSON, TIMESTAMP, Column, ForeignKey, Numeric, String, Uuid

from backoffice.db.session import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True)
    full_name = Column(String(255))
    email = Column(String(255), unique=True, nullable=True)
    role = Column(String(20), default="customer")
    kyc_status = Column(String(20), default="pending")
    status = Column(String(20), default="active")
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))


class Account(Base):
    __tablename__ = "accounts"

    account_id = Column(Uuid, primary_key=True)
    account_number = Column(String(40), unique=True, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id"), nullable=False)
    account_type = Column(String(20))
    currency = Column(String(3))
    balance = Column(Numeric(15, 2), nullable=False)
    status = Column(String(20))
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))


class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id = Column(Uuid, primary_key=True)
    reference_number = Column(String(50), nullable=False, index=True)
    account_id = Column(Uuid, ForeignKey("accounts.account_id"), nullable=False)
    counterparty_account_id = Column(Uuid, nullable=True)
    entry_type = Column(String(10))
    transaction_type = Column(String(30))
    amount = Column(Numeric(15, 2))
    balance_after = Column(Numeric(15, 2))
    status = Column(String(20))
    description = Column(String)
    metadata_json = Column("metadata", JSON)
    created_at = Column(TIMESTAMP(timezone=True))


class ReconciliationItem(Base):
    __tablename__ = "reconciliation_items"

    item_id = Column(Uuid, primary_key=True)
    reference_number = Column(String(50), nullable=False, index=True)
    reason = Column(String(40), nullable=False)
    account_id = Column(Uuid, nullable=True)
    details = Column(JSON)
    status = Column(String(20), default="open")
    created_at = Column(TIMESTAMP(timezone=True))
