"""
Infrastructure layer - ledger backends and external system integrations.
Keeps business logic clean from implementation details.
"""

from .locks import EventLockRegistry
from .memory_ledger import InMemoryLedger
from .redis_client import RedisClient, get_redis
from .sql_ledger import SqlAlchemyLedger

__all__ = ["EventLockRegistry", "InMemoryLedger", "RedisClient", "SqlAlchemyLedger", "get_redis"]
