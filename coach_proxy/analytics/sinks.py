"""Analytics sink backends.

The backend is picked once when the app is built: PostgreSQL when
``DATABASE_URL`` is set, otherwise every event becomes a structured log
record. Both expose the same async ``record`` call.
"""

import logging
import re
from typing import Protocol

from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from coach_proxy.analytics.events import AnalyticsEvent
from coach_proxy.config.settings import Settings

logger = logging.getLogger("coach.analytics")

TABLE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class AnalyticsSink(Protocol):
    backend: str

    async def startup(self) -> None:
        """Acquire resources and prepare storage."""

    async def record(self, event: AnalyticsEvent) -> None:
        """Write one event."""

    async def shutdown(self) -> None:
        """Release resources."""


class LogOnlyAnalyticsSink:
    backend = "log"

    async def startup(self) -> None:
        logger.info("analytics_log_only", extra={"backend": self.backend})

    async def record(self, event: AnalyticsEvent) -> None:
        logger.info("event", extra={"type": "analytics", **event.as_row()})

    async def shutdown(self) -> None:
        return None


class PostgresAnalyticsSink:
    backend = "postgres"

    def __init__(
        self,
        dsn: str,
        table: str = "events",
        pool_size: int = 5,
        sslmode: str = "require",
    ):
        if not TABLE_NAME_RE.match(table):
            raise ValueError(f"Invalid table name: {table}")
        self._table = table
        self._pool = AsyncConnectionPool(
            conninfo=dsn,
            min_size=1,
            max_size=max(pool_size, 1),
            kwargs={"sslmode": sslmode},
            open=False,
        )

    async def startup(self) -> None:
        await self._pool.open()
        try:
            await self.ensure_schema()
        except Exception as exc:
            logger.error(
                "analytics_init_failed",
                extra={"backend": self.backend, "error": f"{type(exc).__name__}: {exc}"},
            )
            return
        logger.info("analytics_table_ready", extra={"backend": self.backend})

    async def ensure_schema(self) -> None:
        ddl = f"""
        CREATE TABLE IF NOT EXISTS {self._table} (
            id           BIGSERIAL PRIMARY KEY,
            ts           TIMESTAMPTZ NOT NULL DEFAULT now(),
            session_id   TEXT,
            user_agent   TEXT,
            ip           TEXT,
            page         TEXT,
            step         INTEGER,
            section_id   TEXT,
            event_name   TEXT NOT NULL,
            payload      JSONB
        );
        """
        async with self._pool.connection() as conn:
            await conn.execute(ddl)

    async def record(self, event: AnalyticsEvent) -> None:
        row = event.as_row()
        sql = (
            f"INSERT INTO {self._table} "
            "(session_id, user_agent, ip, page, step, section_id, event_name, payload) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s)"
        )
        payload = Jsonb(row["payload"]) if row["payload"] is not None else None
        async with self._pool.connection() as conn:
            await conn.execute(
                sql,
                [
                    row["session_id"],
                    row["user_agent"],
                    row["ip"],
                    row["page"],
                    row["step"],
                    row["section_id"],
                    row["event_name"],
                    payload,
                ],
            )

    async def shutdown(self) -> None:
        await self._pool.close()


def create_analytics_sink(settings: Settings) -> AnalyticsSink:
    if settings.persistence_enabled and settings.database_url:
        return PostgresAnalyticsSink(
            dsn=settings.database_url,
            table=settings.analytics_table,
            pool_size=settings.database_pool_size,
            sslmode=settings.database_sslmode,
        )
    return LogOnlyAnalyticsSink()
