"""Account stores used by the transfer engine."""

from backoffice.store.base import AccountStore
from backoffice.store.memory import InMemoryAccountStore
from backoffice.store.sql import SqlAlchemyAccountStore

__all__ = ["AccountStore", "InMemoryAccountStore", "SqlAlchemyAccountStore"]
