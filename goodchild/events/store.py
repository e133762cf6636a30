"""Relational store for per-chat event flags (welcome/goodbye/...).

One row per chat JID in the ``events`` table. Every operation borrows a
pooled connection for a single statement; writes are one atomic
``INSERT ... ON CONFLICT (jid) DO UPDATE`` so two concurrent writers
for a new chat end up with one row holding the last committed value.

Blocking SQLAlchemy calls run in worker threads via asyncio.to_thread.
"""

import asyncio
from pathlib import Path
from typing import Dict, Optional

import structlog
from sqlalchemy import Column, Integer, MetaData, Table, Text, create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..exceptions import DuplicateKeyError, InvalidColumnError, StorageError
from .flags import DISABLED_VALUE, FLAG_COLUMNS, FlagState, is_valid_flag

logger = structlog.get_logger("goodchild.events")

metadata = MetaData()

events_table = Table(
    "events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("jid", Text, unique=True, nullable=False),
    *[Column(name, Text, server_default=DISABLED_VALUE) for name in FLAG_COLUMNS],
)


def _mask_jid(jid: str) -> str:
    """Keep only the tail of a JID for log privacy."""
    user, _, server = jid.partition("@")
    return "..." + user[-4:] + ("@" + server if server else "")


class EventFlagStore:
    """Read and upsert per-chat flags.

    Args:
        database_url: SQLAlchemy URL (postgresql://..., sqlite:///...).
        pool_size: Connections kept open by the pool.
        max_overflow: Extra connections allowed under load.
        pool_timeout: Seconds to wait for a free connection.
    """

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 30.0,
    ):
        url = make_url(database_url)
        engine_kwargs = {"pool_pre_ping": True}
        self._sqlite_file: Optional[Path] = None
        if url.get_backend_name() == "sqlite":
            if url.database in (None, "", ":memory:"):
                # Worker threads must all share the single in-memory connection
                engine_kwargs.update(
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._sqlite_file = Path(url.database).expanduser()
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
            )
        self._engine: Engine = create_engine(url, **engine_kwargs)
        self._dialect = self._engine.dialect.name

    @classmethod
    def from_config(cls, config) -> "EventFlagStore":
        return cls(
            config.database_url,
            pool_size=config.database_pool_size,
            max_overflow=config.database_max_overflow,
            pool_timeout=config.database_pool_timeout,
        )

    @staticmethod
    def _check_column(column: str) -> None:
        if not is_valid_flag(column):
            raise InvalidColumnError(column)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def initialize_schema(self) -> None:
        """Create the events table if it does not exist. Safe to repeat.

        Raises:
            StorageError: If the database cannot be reached.
        """
        await asyncio.to_thread(self._initialize_schema_sync)

    def _initialize_schema_sync(self) -> None:
        try:
            if self._sqlite_file is not None:
                self._sqlite_file.parent.mkdir(parents=True, exist_ok=True)
            metadata.create_all(self._engine, checkfirst=True)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError("events table creation failed", reason=str(e)) from e
        logger.info("events_table_ready", dialect=self._dialect)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _upsert_statement(self, jid: str, column: str, value: str):
        if self._dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif self._dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StorageError(
                "upsert not supported for this database", dialect=self._dialect
            )
        stmt = insert(events_table).values(jid=jid, **{column: value})
        return stmt.on_conflict_do_update(
            index_elements=[events_table.c.jid],
            set_={column: stmt.excluded[column]},
        )

    def _set_flag_sync(self, jid: str, column: str, value: str) -> None:
        stmt = self._upsert_statement(jid, column, value)
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError as e:
            raise DuplicateKeyError("events upsert hit a key conflict", reason=str(e)) from e
        except SQLAlchemyError as e:
            raise StorageError("events upsert failed", reason=str(e)) from e

    async def set_flag(self, jid: str, column: str, value: str) -> bool:
        """Set one flag for a chat, creating its row if needed.

        Args:
            jid: Chat identifier.
            column: One of FLAG_COLUMNS.
            value: Stored as-is (legacy data uses "oui"/"non").

        Returns:
            True on success, False if the database call failed.

        Raises:
            InvalidColumnError: If column is not an allowed flag.
        """
        self._check_column(column)
        try:
            await asyncio.to_thread(self._set_flag_sync, jid, column, value)
        except Exception as e:
            logger.error(
                "event_flag_update_failed",
                jid=_mask_jid(jid),
                flag=column,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.info("event_flag_updated", jid=_mask_jid(jid), flag=column)
        return True

    async def set_state(self, jid: str, column: str, state: FlagState) -> bool:
        """Set a flag from its tri-state form."""
        return await self.set_flag(jid, column, state.to_stored())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _get_row_sync(self, jid: str):
        try:
            with self._engine.connect() as conn:
                return conn.execute(
                    select(events_table).where(events_table.c.jid == jid)
                ).mappings().first()
        except SQLAlchemyError as e:
            raise StorageError("events read failed", reason=str(e)) from e

    async def get_flag(self, jid: str, column: str) -> Optional[str]:
        """Read one flag for a chat.

        Returns:
            The stored string, or None if the chat has no row. A database
            failure is logged and also returns None.

        Raises:
            InvalidColumnError: If column is not an allowed flag.
        """
        self._check_column(column)
        try:
            row = await asyncio.to_thread(self._get_row_sync, jid)
        except Exception as e:
            logger.error(
                "event_flag_read_failed",
                jid=_mask_jid(jid),
                flag=column,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        if row is None:
            return None
        return row[column]

    async def get_state(self, jid: str, column: str) -> FlagState:
        """Read a flag as ENABLED, DISABLED or UNSET."""
        return FlagState.from_stored(await self.get_flag(jid, column))

    async def get_flags(self, jid: str) -> Optional[Dict[str, str]]:
        """All flag values for a chat, or None if it has no row (or on error)."""
        try:
            row = await asyncio.to_thread(self._get_row_sync, jid)
        except Exception as e:
            logger.error(
                "event_flag_read_failed",
                jid=_mask_jid(jid),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        if row is None:
            return None
        return {name: row[name] for name in FLAG_COLUMNS}

    async def close(self) -> None:
        """Dispose the engine and release pooled connections."""
        await asyncio.to_thread(self._engine.dispose)
