import psycopg

from doccompare.config.settings import Settings
from doccompare.database.backends.base import Backend
from doccompare.database.backends.memory import MemoryBackend, MemoryStore
from doccompare.database.backends.relational import RelationalBackend
from doccompare.database.connection import init_pool, pool_is_open
from doccompare.database.exceptions import BackendUnavailableError
from doccompare.database.schema import initialize_schema
from doccompare.logging.logger import Log


class BackendFactory:
    """Chooses the storage backend once, at startup."""

    @classmethod
    def create(cls, settings: Settings, store: MemoryStore | None = None) -> Backend:
        """Relational when the process has schema/write access, memory otherwise."""
        if not settings.db_create_access:
            Log.warning(
                "Running on the in-memory backend: data is not durable "
                "and must not be shared across processes"
            )
            return MemoryBackend(store)
        if not pool_is_open():
            init_pool(settings)
        try:
            initialize_schema()
        except psycopg.OperationalError as exc:
            raise BackendUnavailableError(f"Database unavailable at startup: {exc}") from exc
        Log.info(f"Running on PostgreSQL at {settings.db_host}:{settings.db_port}")
        return RelationalBackend()
