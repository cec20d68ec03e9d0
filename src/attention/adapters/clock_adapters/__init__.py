from attention.adapters.clock_adapters.asyncio_scheduler import AsyncioScheduler
from attention.adapters.clock_adapters.manual_scheduler import ManualScheduler

__all__ = ["AsyncioScheduler", "ManualScheduler"]
