# tests/test_config.py
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from tdb.config import (
    DEFAULT_PORT,
    ServerEntry,
    ServerRegistry,
    config_path,
    default_port,
    load_config,
    parse_config,
)
from tdb.errors import ConfigError, ServerNotFoundError

METADATA = """
[Staff]
LoginUserId = "jdoe"
PIN = "1234"
FirstName = "Jane"
LastName = "Doe"
NTUserName = "CORP\\\\jdoe"
EmailAddress = "jdoe@example.com"
SSOUserId = "jdoe@example.com"

[StaffBadges]
BadgeData = "0000"
"""

SERVERS = """
[Servers]
PROD = "host.example.com"
TEST = { url = "host.example.com" }
ALT = { url = "alt.example.com", port = 14330 }
"""


def make_config(servers: str = SERVERS, metadata: str = METADATA) -> str:
    return servers + metadata


class TestDefaultPort(unittest.TestCase):
    def test_default_port_is_sql_server_port(self):
        self.assertEqual(default_port(), 1433)
        self.assertEqual(DEFAULT_PORT, 1433)


class TestParseConfig(unittest.TestCase):
    def test_parses_servers_and_metadata(self):
        cfg = parse_config(make_config())
        self.assertEqual(set(cfg.servers), {"PROD", "TEST", "ALT"})
        self.assertEqual(cfg.staff.login_user_id, "jdoe")
        self.assertEqual(cfg.staff.nt_username, "CORP\\jdoe")
        self.assertIsNone(cfg.staff_badges.login_user_id)
        self.assertEqual(cfg.staff_badges.badge_data, "0000")

    def test_bad_toml_raises_config_error(self):
        with self.assertRaises(ConfigError) as ctx:
            parse_config("[Servers\nPROD = ")
        self.assertIn("failed to parse toml", str(ctx.exception).lower())

    def test_missing_section_raises_config_error(self):
        with self.assertRaises(ConfigError):
            parse_config(SERVERS)

    def test_unknown_metadata_field_rejected(self):
        metadata = METADATA.replace('BadgeData = "0000"', 'BadgeData = "0000"\nColour = "red"')
        with self.assertRaises(ConfigError):
            parse_config(make_config(metadata=metadata))

    def test_unknown_server_field_rejected(self):
        servers = '[Servers]\nPROD = { url = "h", port = 1, user = "x" }\n'
        with self.assertRaises(ConfigError):
            parse_config(make_config(servers=servers))

    def test_server_port_out_of_range_rejected(self):
        servers = '[Servers]\nPROD = { url = "h", port = 70000 }\n'
        with self.assertRaises(ConfigError):
            parse_config(make_config(servers=servers))

    def test_unknown_top_level_section_ignored(self):
        cfg = parse_config(make_config() + '\n[Extra]\nkey = "value"\n')
        self.assertIn("PROD", cfg.servers)

    def test_config_is_read_only(self):
        cfg = parse_config(make_config())
        with self.assertRaises(Exception):
            cfg.staff.pin = "9999"


class TestServerRegistry(unittest.TestCase):
    def setUp(self):
        self.registry = ServerRegistry.from_config(parse_config(make_config()))

    def test_compact_and_structured_forms_default_port(self):
        prod = self.registry.resolve("PROD")
        test = self.registry.resolve("TEST")
        self.assertEqual(prod.port, 1433)
        self.assertEqual(test.port, 1433)
        self.assertEqual((prod.host, prod.port), (test.host, test.port))

    def test_explicit_port(self):
        alt = self.registry.resolve("ALT")
        self.assertEqual(alt, ServerEntry(name="ALT", host="alt.example.com", port=14330))
        self.assertEqual(alt.address, "alt.example.com,14330")

    def test_unknown_server_raises_not_found(self):
        with self.assertRaises(ServerNotFoundError) as ctx:
            self.registry.resolve("NOPE")
        self.assertIn("unknown server", str(ctx.exception).lower())
        self.assertIn("PROD", str(ctx.exception))

    def test_names_and_membership(self):
        self.assertEqual(sorted(self.registry.names()), ["ALT", "PROD", "TEST"])
        self.assertIn("PROD", self.registry)
        self.assertNotIn("prod", self.registry)
        self.assertEqual(len(self.registry), 3)


class TestLoadConfig(unittest.TestCase):
    def test_missing_file_raises_config_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ConfigError) as ctx:
                load_config(Path(tmp) / "tdb.toml")
        self.assertIn("not found", str(ctx.exception).lower())

    def test_load_from_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "tdb.toml"
            path.write_text(make_config(), encoding="utf-8")
            cfg = load_config(path)
        self.assertIn("ALT", cfg.servers)

    def test_config_path_precedence(self):
        with patch.dict(os.environ, {"TDB_CONFIG": "/etc/tdb.toml"}, clear=False):
            self.assertEqual(config_path("custom.toml"), Path("custom.toml"))
            self.assertEqual(config_path(), Path("/etc/tdb.toml"))
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(config_path(), Path("tdb.toml"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
