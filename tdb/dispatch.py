# dispatch.py
import logging
from typing import Optional, Union

from rich.console import Console

from .config import ServerRegistry
from .db import execute_query_async, execute_update_async, writes_allowed
from .errors import WritesDisabledError
from .naming import resolve_db_name
from .query import ClauseSet, Operation, build_statement, parse_operation
from .render import format_modify_result, print_rows, render_rows

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Runs one invocation: resolve server, resolve database, build the
    statement, execute it and print the result. The first error propagates.
    """

    def __init__(self, registry: ServerRegistry, console: Optional[Console] = None) -> None:
        self.registry = registry
        self.console = console or Console()

    async def run(
        self,
        server_name: str,
        db_arg: str,
        operation: Union[Operation, str],
        table: str,
        clauses: Optional[ClauseSet] = None,
    ) -> None:
        entry = self.registry.resolve(server_name)
        logger.info("server=%s address=%s", entry.name, entry.address)

        db = resolve_db_name(db_arg)
        logger.info("db=%s", db)

        op = operation if isinstance(operation, Operation) else parse_operation(operation)
        logger.info("operation=%s table=%s", op.value, table)

        statement = build_statement(op, table, clauses)

        if op is Operation.SELECT:
            rows = await execute_query_async(entry, db, statement)
            print_rows(render_rows(rows), console=self.console)
            return

        if not writes_allowed():
            raise WritesDisabledError(
                f"{op.value.upper()} is disabled. Set TDB_ALLOW_WRITES=true to enable write operations."
            )
        affected = await execute_update_async(entry, db, statement)
        self.console.print(format_modify_result(affected, op.value.upper()), markup=False, highlight=False)
