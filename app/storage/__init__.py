"""Storage collaborator adapters."""

from app.config import Settings
from app.core.logging import get_logger
from app.storage.base import RecordStore
from app.storage.memory import InMemoryRecordStore
from app.storage.redis_store import RedisRecordStore

logger = get_logger(__name__)


async def create_record_store(settings: Settings) -> RecordStore:
    """
    Build the record store selected by DATA_SOURCE.

    Called once at startup; the result is injected into the analytics
    service and never swapped while the process runs.
    """
    if settings.DATA_SOURCE == "redis":
        store = RedisRecordStore(url=settings.REDIS_URL)
        await store.connect()
    elif settings.SEED_DATA_PATH:
        store = InMemoryRecordStore.from_seed_file(settings.SEED_DATA_PATH)
    else:
        store = InMemoryRecordStore()

    logger.info("Record store ready", extra={"data_source": store.name})
    return store


__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "RedisRecordStore",
    "create_record_store",
]
