# db.py
import asyncio
import hashlib
import logging
import os
import struct
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence, Tuple

import pyodbc

from .columns import ColumnValue, XmlData, kind_of
from .config import ServerEntry
from .errors import ConnectTimeoutError, ExecError

logger = logging.getLogger(__name__)

# uniqueidentifier columns come back as uuid.UUID (value and description type code).
pyodbc.native_uuid = True

APP_NAME = "tdb"
CONNECT_TIMEOUT = 3
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

# SQL Server specific ODBC types pyodbc does not convert on its own.
SQL_SS_XML = -152
SQL_SS_TIMESTAMPOFFSET = -155

# SQLSTATEs raised when the login timeout expires.
_TIMEOUT_STATES = ("HYT00", "HYT01")

Row = List[Tuple[str, ColumnValue]]


def _env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() == "true"


def writes_allowed() -> bool:
    return _env_flag("TDB_ALLOW_WRITES")


def _sql_fingerprint(sql: str) -> str:
    """Short stable fingerprint for logs without leaking SQL text."""
    digest = hashlib.sha256(sql.encode("utf-8", errors="ignore")).hexdigest()
    return digest[:12]


def _sqlstate(error: pyodbc.Error) -> str:
    return str(error.args[0]) if error.args else ""


def connection_string(entry: ServerEntry, database: str) -> str:
    driver = os.getenv("TDB_ODBC_DRIVER", DEFAULT_ODBC_DRIVER)
    parts = [
        f"DRIVER={{{driver}}}",
        f"SERVER={entry.address}",
        f"DATABASE={database}",
        "Encrypt=yes",
        f"APP={APP_NAME}",
    ]

    user = os.getenv("TDB_USER")
    if user:
        parts.append(f"UID={user}")
        parts.append(f"PWD={os.getenv('TDB_PASS', '')}")
    else:
        parts.append("Trusted_Connection=yes")

    if _env_flag("TDB_TRUST_SERVER_CERTIFICATE"):
        parts.append("TrustServerCertificate=yes")
    return ";".join(parts)


def _convert_datetimeoffset(raw: Optional[bytes]) -> Optional[datetime]:
    if raw is None:
        return None
    # SQL_SS_TIMESTAMPOFFSET_STRUCT; fraction is in nanoseconds.
    year, month, day, hour, minute, second, fraction, tz_hour, tz_minute = struct.unpack("<6hI2h", raw)
    tz = timezone(timedelta(hours=tz_hour, minutes=tz_minute))
    return datetime(year, month, day, hour, minute, second, fraction // 1000, tzinfo=tz)


def _convert_xml(raw: Optional[bytes]) -> Optional[XmlData]:
    if raw is None:
        return None
    return XmlData(raw.decode("utf-16-le"))


def get_connection(entry: ServerEntry, database: str, timeout: int = CONNECT_TIMEOUT) -> pyodbc.Connection:
    """Connect to a server; the login phase is bounded by `timeout` seconds."""
    try:
        conn = pyodbc.connect(connection_string(entry, database), timeout=timeout)
    except pyodbc.Error as e:
        if _sqlstate(e) in _TIMEOUT_STATES:
            logger.error("Connection to %s timed out after %ss", entry.address, timeout)
            raise ConnectTimeoutError(
                f"Timed out connecting to {entry.name} ({entry.address}) after {timeout}s"
            ) from e
        logger.error("Connection failed: %s", e)
        raise ExecError(f"Failed to connect to {entry.name} ({entry.address}): {e}") from e

    conn.add_output_converter(SQL_SS_TIMESTAMPOFFSET, _convert_datetimeoffset)
    conn.add_output_converter(SQL_SS_XML, _convert_xml)
    logger.info("connected to %s", entry.address)
    return conn


def rows_from_cursor(description: Sequence[Sequence[Any]], records: Sequence[Sequence[Any]]) -> List[Row]:
    """
    Pair each cell with its column name and kind, keeping column order.

    A column's kind comes from its first non-null value, so NULL cells share
    the kind of the rest of their column. All-NULL columns fall back to the
    driver's type code.
    """
    columns = [(d[0], d[1], d[4]) for d in description]
    kinds = [
        kind_of(next((r[i] for r in records if r[i] is not None), None), type_code, precision)
        for i, (_, type_code, precision) in enumerate(columns)
    ]
    rows: List[Row] = []
    for record in records:
        rows.append(
            [(name, ColumnValue(kind, value)) for (name, _, _), kind, value in zip(columns, kinds, record)]
        )
    return rows


async def execute_query_async(
    entry: ServerEntry,
    database: str,
    statement: str,
    timeout: int = CONNECT_TIMEOUT,
) -> List[Row]:
    """Asynchronous execution of a SELECT statement."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, execute_query, entry, database, statement, timeout)


def execute_query(
    entry: ServerEntry,
    database: str,
    statement: str,
    timeout: int = CONNECT_TIMEOUT,
) -> List[Row]:
    """Execute a SELECT statement and return typed rows."""
    conn = get_connection(entry, database, timeout)
    fp = _sql_fingerprint(statement)
    logger.debug("Executing fp=%s sql=%s", fp, statement)
    try:
        cursor = conn.cursor()
        cursor.execute(statement)
        if cursor.description is None:
            raise ExecError("Query did not return a result set (cursor.description is None).")

        rows = rows_from_cursor(cursor.description, cursor.fetchall())
        logger.info("Query OK fp=%s rows=%d", fp, len(rows))
        return rows
    except pyodbc.Error as e:
        logger.error("Query failed fp=%s err=%s", fp, e)
        raise ExecError(f"Query execution failed: {e}") from e
    finally:
        conn.close()


async def execute_update_async(
    entry: ServerEntry,
    database: str,
    statement: str,
    timeout: int = CONNECT_TIMEOUT,
) -> int:
    """Asynchronous execution of an INSERT/UPDATE statement."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, execute_update, entry, database, statement, timeout)


def execute_update(
    entry: ServerEntry,
    database: str,
    statement: str,
    timeout: int = CONNECT_TIMEOUT,
) -> int:
    """Execute an INSERT/UPDATE statement and return affected rows."""
    conn = get_connection(entry, database, timeout)
    fp = _sql_fingerprint(statement)
    logger.debug("Executing fp=%s sql=%s", fp, statement)
    try:
        cursor = conn.cursor()
        cursor.execute(statement)
        affected = cursor.rowcount
        conn.commit()
        logger.info("Update OK fp=%s affected=%s", fp, affected)
        return int(affected) if affected is not None else 0
    except pyodbc.Error as e:
        conn.rollback()
        logger.error("Update failed fp=%s err=%s", fp, e)
        raise ExecError(f"Update execution failed: {e}") from e
    finally:
        conn.close()
