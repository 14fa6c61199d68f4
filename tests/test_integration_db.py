# tests/test_integration_db.py
import os

import pytest
from dotenv import load_dotenv

from tdb.config import ServerEntry, default_port
from tdb.db import execute_query
from tdb.errors import TdbError

load_dotenv()  # ensure .env is loaded for the test run


@pytest.mark.integration
def test_real_select():
    host = os.getenv("TDB_TEST_SERVER")
    if not host:
        pytest.skip("TDB_TEST_SERVER not set")

    entry = ServerEntry(name="TEST", host=host, port=int(os.getenv("TDB_TEST_PORT", default_port())))
    database = os.getenv("TDB_TEST_DATABASE", "master")
    try:
        rows = execute_query(entry, database, "SELECT TOP 1 name FROM sys.databases WITH (NOLOCK) ")
    except TdbError as e:
        # Typical when no driver or server is reachable from the test machine
        pytest.skip(f"SQL Server not configured / not reachable: {e}")

    assert rows
    assert rows[0][0][0] == "name"
