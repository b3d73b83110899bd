"""Database-backed sidecar store. SQLite by default; set DATABASE_URL for another SQLAlchemy backend.
Used when SIDECAR_BACKEND=sql; same contract as the JSON file store."""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from webpdesk import config as app_config
from webpdesk.conversion.models import MetadataSidecar

logger = logging.getLogger("converter.db")

_engine: Optional[Engine] = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def make_engine(url: str) -> Engine:
    kwargs = {}
    if _is_sqlite(url):
        kwargs["connect_args"] = {"check_same_thread": False}
        db_file = url.split("///", 1)[-1] if "///" in url else ""
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = make_engine(app_config.DATABASE_URL)
        logger.info("Database engine created (%s)", _engine.dialect.name)
    return _engine


def _create_tables(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS sidecars (
                name VARCHAR(255) PRIMARY KEY,
                original_name VARCHAR(1024) NOT NULL,
                original_size BIGINT NOT NULL,
                converted_at VARCHAR(50) NOT NULL
            )
        """))
        conn.commit()


def init_db(engine: Optional[Engine] = None) -> Engine:
    """Ensure the sidecars table exists. Returns the engine used."""
    engine = engine or get_engine()
    _create_tables(engine)
    logger.info("Sidecar table ready (%s)", engine.dialect.name)
    return engine


@contextmanager
def session(engine: Engine):
    with engine.connect() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def _parse_converted_at(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class SqlSidecarStore:
    """Sidecars as rows of the ``sidecars`` table, keyed by output stem."""

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = init_db(engine)

    def write(self, name: str, sidecar: MetadataSidecar) -> bool:
        params = {
            "name": name,
            "original_name": sidecar.original_name,
            "original_size": sidecar.original_size,
            "converted_at": sidecar.converted_at.isoformat(),
        }
        try:
            with session(self.engine) as conn:
                # Delete + insert keeps the upsert portable across backends
                conn.execute(text("DELETE FROM sidecars WHERE name = :name"), {"name": name})
                conn.execute(
                    text("""
                        INSERT INTO sidecars (name, original_name, original_size, converted_at)
                        VALUES (:name, :original_name, :original_size, :converted_at)
                    """),
                    params,
                )
            return True
        except SQLAlchemyError as e:
            logger.warning("Could not write sidecar row for %s: %s", name, e)
            return False

    def read(self, name: str) -> Optional[MetadataSidecar]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    text("SELECT original_name, original_size, converted_at FROM sidecars WHERE name = :name"),
                    {"name": name},
                ).fetchone()
        except SQLAlchemyError as e:
            logger.warning("Could not read sidecar row for %s: %s", name, e)
            return None
        if not row:
            return None
        try:
            return MetadataSidecar(
                original_name=row[0],
                original_size=int(row[1]),
                converted_at=_parse_converted_at(row[2]),
            )
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring malformed sidecar row %s: %s", name, e)
            return None

    def delete(self, name: str) -> None:
        try:
            with session(self.engine) as conn:
                conn.execute(text("DELETE FROM sidecars WHERE name = :name"), {"name": name})
        except SQLAlchemyError as e:
            logger.warning("Could not delete sidecar row for %s: %s", name, e)
