from pathlib import Path

from doccompare.database.connection import get_connection
from doccompare.logging.logger import Log

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

TABLE_NAMES = ("processing_queue", "exports", "comparisons", "documents")


def initialize_schema(migrations_dir: Path | None = None) -> list[str]:
    """Apply every migration file in name order. Statements are idempotent.

    Returns the names of the applied files.
    """
    directory = migrations_dir if migrations_dir is not None else MIGRATIONS_DIR
    applied: list[str] = []
    with get_connection() as conn:
        for path in sorted(directory.glob("*.sql")):
            conn.execute(path.read_text(encoding="utf-8"))
            applied.append(path.name)
        conn.commit()
    Log.info(f"Database schema initialized ({len(applied)} migration files)")
    return applied


def truncate_all() -> None:
    """Remove every row and reset ids. Intended for tests."""
    with get_connection() as conn:
        conn.execute(
            "TRUNCATE " + ", ".join(TABLE_NAMES) + " RESTART IDENTITY CASCADE"
        )
        conn.commit()
