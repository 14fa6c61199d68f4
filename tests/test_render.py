# tests/test_render.py
import io
import unittest

from rich.console import Console

from tdb.columns import ColumnKind, ColumnValue
from tdb.errors import EmptyResultError
from tdb.render import format_modify_result, print_rows, render_rows


def recording_console() -> Console:
    return Console(file=io.StringIO(), width=100, color_system=None)


ROWS = [
    [
        ("id", ColumnValue(ColumnKind.I32, 5)),
        ("name", ColumnValue(ColumnKind.STRING, "Alice")),
        ("active", ColumnValue(ColumnKind.BIT, None)),
    ],
    [
        ("id", ColumnValue(ColumnKind.I32, None)),
        ("name", ColumnValue(ColumnKind.STRING, None)),
        ("active", ColumnValue(ColumnKind.BIT, True)),
    ],
]


class TestRenderRows(unittest.TestCase):
    def test_renders_display_strings_in_column_order(self):
        rendered = render_rows(ROWS)
        self.assertEqual(
            rendered,
            [
                [("id", "5"), ("name", "Alice"), ("active", "false")],
                [("id", "0"), ("name", ""), ("active", "true")],
            ],
        )

    def test_zero_rows_raises_empty_result(self):
        with self.assertRaises(EmptyResultError):
            render_rows([])


class TestPrintRows(unittest.TestCase):
    def test_one_table_per_row(self):
        console = recording_console()
        print_rows(render_rows(ROWS), console=console)
        out = console.file.getvalue()

        self.assertIn("Row 1 of 2", out)
        self.assertIn("Row 2 of 2", out)
        self.assertEqual(out.count("Field"), 2)
        self.assertEqual(out.count("Value"), 2)
        self.assertIn("Alice", out)

    def test_field_order_is_preserved(self):
        console = recording_console()
        print_rows(render_rows(ROWS[:1]), console=console)
        out = console.file.getvalue()
        self.assertLess(out.index("id"), out.index("name"))
        self.assertLess(out.index("name"), out.index("active"))

    def test_values_are_not_markup(self):
        console = recording_console()
        print_rows([[("note", "[bold]raw[/bold]")]], console=console)
        self.assertIn("[bold]raw[/bold]", console.file.getvalue())


class TestFormatModifyResult(unittest.TestCase):
    def test_pluralization(self):
        self.assertEqual(format_modify_result(1, "UPDATE"), "UPDATE OK, 1 row affected")
        self.assertEqual(format_modify_result(3, "INSERT"), "INSERT OK, 3 rows affected")
        self.assertEqual(format_modify_result(0, "UPDATE"), "UPDATE OK, 0 rows affected")


if __name__ == "__main__":
    unittest.main(verbosity=2)
