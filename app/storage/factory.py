from app.core.config import Settings
from app.storage.base import LibraryStorage
from app.storage.memory import MemStorage
from app.storage.sql import SqlStorage


def build_storage(settings: Settings) -> LibraryStorage:
    if settings.STORAGE_BACKEND == "sql":
        return SqlStorage(settings.DATABASE_URL)
    return MemStorage()
