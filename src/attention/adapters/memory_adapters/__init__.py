from attention.adapters.memory_adapters.in_memory_adapter import InMemoryRecordStore, InMemorySessionLog
from attention.adapters.memory_adapters.sqlite_memory_adapter import SqliteMemoryAdapter

__all__ = ["InMemoryRecordStore", "InMemorySessionLog", "SqliteMemoryAdapter"]
