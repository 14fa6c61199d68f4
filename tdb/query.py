# query.py
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .errors import InvalidArgumentError

# Fixed bound on rows returned by a single SELECT.
SELECT_ROW_LIMIT = 100


class Operation(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"

    @property
    def is_write(self) -> bool:
        return self is not Operation.SELECT


# Short and long spellings accepted on the command line.
OPERATION_TOKENS = {
    "s": Operation.SELECT,
    "select": Operation.SELECT,
    "i": Operation.INSERT,
    "insert": Operation.INSERT,
    "u": Operation.UPDATE,
    "update": Operation.UPDATE,
}


def parse_operation(token: str) -> Operation:
    """Map an operation token (case-insensitive) to an Operation."""
    op = OPERATION_TOKENS.get((token or "").strip().lower())
    if op is None:
        allowed = ", ".join(OPERATION_TOKENS)
        raise InvalidArgumentError(f"Invalid operation '{token}'. Must be one of: {allowed}.")
    return op


@dataclass(frozen=True)
class ClauseSet:
    """Raw SQL fragments supplied on the command line. None means the flag was not given."""

    where: Optional[str] = None
    set: Optional[str] = None
    values: Optional[str] = None
    group_by: Optional[str] = None
    order_by: Optional[str] = None

    def present(self) -> List[str]:
        names = ("where", "set", "values", "group_by", "order_by")
        return [n for n in names if getattr(self, n) is not None]


def _reject(op: Operation, clauses: ClauseSet, disallowed: List[str]) -> None:
    bad = [n for n in clauses.present() if n in disallowed]
    if bad:
        flags = ", ".join("--" + n.replace("_", "-") for n in bad)
        raise InvalidArgumentError(f"{flags} not allowed for {op.value.upper()} statements.")


def _require(op: Operation, clauses: ClauseSet, required: List[str]) -> None:
    missing = [n for n in required if getattr(clauses, n) is None]
    if missing:
        flags = ", ".join("--" + n.replace("_", "-") for n in missing)
        raise InvalidArgumentError(f"{op.value.upper()} statements require {flags}.")


def build_select(table: str, clauses: ClauseSet) -> str:
    _reject(Operation.SELECT, clauses, ["set", "values"])

    sql = f"SELECT TOP {SELECT_ROW_LIMIT} * FROM {table} WITH (NOLOCK) "
    if clauses.where is not None:
        sql += f"WHERE {clauses.where} "
    if clauses.group_by is not None:
        sql += f"GROUP BY {clauses.group_by} "
    if clauses.order_by is not None:
        sql += f"ORDER BY {clauses.order_by} "
    return sql


def build_insert(table: str, clauses: ClauseSet) -> str:
    _reject(Operation.INSERT, clauses, ["set", "where", "group_by", "order_by"])
    _require(Operation.INSERT, clauses, ["values"])
    return f"INSERT INTO {table} VALUES ({clauses.values}) "


def build_update(table: str, clauses: ClauseSet) -> str:
    # WHERE is mandatory so a single invocation never rewrites a whole table.
    _reject(Operation.UPDATE, clauses, ["values", "group_by", "order_by"])
    _require(Operation.UPDATE, clauses, ["set", "where"])
    return f"UPDATE {table} SET {clauses.set} WHERE {clauses.where} "


_BUILDERS = {
    Operation.SELECT: build_select,
    Operation.INSERT: build_insert,
    Operation.UPDATE: build_update,
}


def build_statement(op: Operation, table: str, clauses: Optional[ClauseSet] = None) -> str:
    """
    Build the single SQL statement for an invocation.

    Fragments are concatenated verbatim: no quoting or escaping of the table
    name or clause text is performed. Callers are trusted operators.
    """
    if not table or not table.strip():
        raise InvalidArgumentError("A table name is required.")
    return _BUILDERS[op](table, clauses or ClauseSet())
