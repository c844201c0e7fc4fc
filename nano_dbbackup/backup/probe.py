"""Connection probe and size estimation against the target PostgreSQL database."""

from typing import Tuple

import asyncpg

from .._utils import logger, mask_connection_url
from .errors import SizeEstimationError
from .models import ConnectionCheck, SizeEstimate

SIZE_QUERY = "SELECT pg_database_size(current_database())"
TABLES_QUERY = """
    SELECT count(*)
    FROM information_schema.tables
    WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
"""


class PostgresProbe:
    """Short-lived queries used to gate and size a backup.

    Neither method raises: the connection check reports failure through
    ``ConnectionCheck.success`` and size estimation falls back to zeros.
    """

    def __init__(self, connect_timeout: float = 5.0):
        self.connect_timeout = connect_timeout

    async def check_connection(self, connection_url: str) -> ConnectionCheck:
        """Open one connection, run ``SELECT 1`` and close it again."""
        logger.info(f"Testing database connection: {mask_connection_url(connection_url)}")
        try:
            conn = await asyncpg.connect(dsn=connection_url, timeout=self.connect_timeout)
            try:
                value = await conn.fetchval("SELECT 1", timeout=self.connect_timeout)
            finally:
                await conn.close()
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return ConnectionCheck(success=False, message=f"Connection failed: {e}")

        logger.info(f"Database connection test successful: {value}")
        return ConnectionCheck(success=True, message="Connection successful")

    async def estimate_size(self, connection_url: str) -> SizeEstimate:
        """Return database size and table count, or zeros on any failure."""
        try:
            size_bytes, tables_count = await self._query_size(connection_url)
        except SizeEstimationError as e:
            logger.warning(f"Error checking database size, using defaults: {e.original_error}")
            return SizeEstimate()

        estimate = SizeEstimate(size_bytes=size_bytes, tables_count=tables_count)
        logger.info(f"Database size: {estimate.size_mb:.2f} MB, Tables: {tables_count}")
        return estimate

    async def _query_size(self, connection_url: str) -> Tuple[int, int]:
        try:
            conn = await asyncpg.connect(dsn=connection_url, timeout=self.connect_timeout)
            try:
                size_bytes = await conn.fetchval(SIZE_QUERY)
                tables_count = await conn.fetchval(TABLES_QUERY)
            finally:
                await conn.close()
        except Exception as e:
            raise SizeEstimationError("Database size query failed", original_error=str(e)) from e

        return int(size_bytes or 0), int(tables_count or 0)
