"""tdb: query named SQL Server instances from the command line."""

__version__ = "0.1.0"
