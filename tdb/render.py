# render.py
from typing import List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .columns import ColumnValue
from .errors import EmptyResultError

Row = Sequence[Tuple[str, ColumnValue]]
RenderedRow = List[Tuple[str, str]]


def render_row(row: Row) -> RenderedRow:
    return [(name, cell.display()) for name, cell in row]


def render_rows(rows: Sequence[Row]) -> List[RenderedRow]:
    """Convert result rows to display strings, keeping column order."""
    if not rows:
        raise EmptyResultError("Query returned no rows.")
    return [render_row(r) for r in rows]


def row_table(rendered: RenderedRow, index: int, total: int) -> Table:
    table = Table(title=f"Row {index} of {total}", show_header=True, title_justify="left")
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    for name, value in rendered:
        # Text cells are never parsed as rich markup.
        table.add_row(Text(name), Text(value))
    return table


def print_rows(rendered: Sequence[RenderedRow], console: Optional[Console] = None) -> None:
    """Print one two-column (field, value) table per row."""
    console = console or Console()
    total = len(rendered)
    for i, row in enumerate(rendered, start=1):
        console.print(row_table(row, i, total))


def format_modify_result(count: int, operation: str) -> str:
    return f"{operation} OK, {count} row{'s' if count != 1 else ''} affected"
