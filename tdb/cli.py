# cli.py
"""
Command line entry point.

    tdb [--info | --trace] [-c CONFIG] SERVER DATABASE OPERATION TABLE
        [-w WHERE] [-s SET] [-v VALUES] [-g GROUP_BY] [-o ORDER_BY]

One subcommand is generated per server in the config file, so the config is
loaded before arguments are parsed. Logging flags and --config are therefore
read from argv up front as well.
"""

import asyncio
import logging
import os
import sys
from enum import Enum
from typing import List, Optional, Sequence

import click
import typer
from dotenv import load_dotenv
from rich.console import Console

from . import __version__
from .config import ServerEntry, ServerRegistry, load_config
from .dispatch import Dispatcher
from .errors import TdbError
from .query import ClauseSet

logger = logging.getLogger("tdb")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

_LOG_LEVELS = {
    "TRACE": logging.DEBUG,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class OperationToken(str, Enum):
    s = "s"
    select = "select"
    i = "i"
    insert = "insert"
    u = "u"
    update = "update"


def log_level(argv: Sequence[str]) -> int:
    """--trace wins over --info, which wins over $TDB_LOG (default WARN)."""
    if "--trace" in argv:
        return logging.DEBUG
    if "--info" in argv:
        return logging.INFO
    return _LOG_LEVELS.get(os.getenv("TDB_LOG", "WARN").strip().upper(), logging.WARNING)


def setup_logging(level: int) -> None:
    # Logs go to stderr; stdout carries the result tables.
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)


def config_arg(argv: Sequence[str]) -> Optional[str]:
    """Return the value of a leading -c/--config option, if any."""
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-c", "--config"):
            return args[i + 1] if i + 1 < len(args) else None
        if arg.startswith("--config="):
            return arg.split("=", 1)[1]
        if not arg.startswith("-"):
            # First positional is the server subcommand.
            return None
        i += 1
    return None


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tdb {__version__}")
        raise typer.Exit()


def _server_command(entry: ServerEntry, registry: ServerRegistry, console: Optional[Console]):
    def command(
        database: str = typer.Argument(..., metavar="DATABASE", help="The database to use"),
        operation: OperationToken = typer.Argument(
            ..., metavar="OPERATION", case_sensitive=False, help="The operation to perform"
        ),
        table: str = typer.Argument(..., metavar="TABLE", help="The table to operate on"),
        set_: Optional[str] = typer.Option(None, "--set", "-s", help="A SET clause"),
        where: Optional[str] = typer.Option(None, "--where", "-w", help="A WHERE clause"),
        values: Optional[str] = typer.Option(None, "--values", "-v", help="A VALUES clause"),
        group_by: Optional[str] = typer.Option(None, "--group-by", "-g", help="A GROUP BY clause"),
        order_by: Optional[str] = typer.Option(None, "--order-by", "-o", help="An ORDER BY clause"),
        info: bool = typer.Option(False, "--info", hidden=True, help="Use info output"),
        trace: bool = typer.Option(False, "--trace", hidden=True, help="Use trace output"),
    ) -> None:
        if info and trace:
            raise typer.BadParameter("--info and --trace are mutually exclusive")

        clauses = ClauseSet(where=where, set=set_, values=values, group_by=group_by, order_by=order_by)
        dispatcher = Dispatcher(registry, console=console)
        asyncio.run(dispatcher.run(entry.name, database, operation.value, table, clauses))

    return command


def build_app(registry: ServerRegistry, console: Optional[Console] = None) -> typer.Typer:
    app = typer.Typer(
        name="tdb",
        help="Query SQL Server databases by configured server name.",
        no_args_is_help=True,
        add_completion=False,
    )

    @app.callback()
    def main_options(
        info: bool = typer.Option(False, "--info", help="Use info output"),
        trace: bool = typer.Option(False, "--trace", help="Use trace output"),
        config: Optional[str] = typer.Option(
            None,
            "--config",
            "-c",
            help="Use a custom configuration file. Defaults to $TDB_CONFIG, "
            "then tdb.toml in the current directory.",
        ),
        version: bool = typer.Option(
            False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
        ),
    ) -> None:
        if info and trace:
            raise typer.BadParameter("--info and --trace are mutually exclusive")

    for entry in registry:
        app.command(name=entry.name, help=f"{entry.host} (port {entry.port})")(
            _server_command(entry, registry, console)
        )
    return app


def main(argv: Optional[List[str]] = None) -> int:
    """
    Load the config, parse arguments and run the selected server command.
    All errors are returned here as an exit status; connections are already
    closed by the time this function returns.
    """
    argv = list(sys.argv[1:] if argv is None else argv)

    # Host environment variables take precedence over .env values.
    load_dotenv()
    setup_logging(log_level(argv))
    logger.debug("command=%s", " ".join(["tdb", *argv]))

    try:
        registry = ServerRegistry.from_config(load_config(config_arg(argv)))
        command = typer.main.get_command(build_app(registry))
        status = command.main(args=argv, prog_name="tdb", standalone_mode=False)
    except TdbError as e:
        logger.error("%s", e)
        return 1
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1

    logger.info("Done")
    return status if isinstance(status, int) else 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
