"""
Tests for CLI Commands

Tests the download, tables, fields, query, version and init-config commands
against a SQLite source database.
"""

import json
import os
import sqlite3
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from tabledump import __version__
from tabledump.cli.main import app as main_app


CLEAN_ENV = {"PATH": os.environ.get("PATH", "")}


@pytest.mark.cli
class TestDownloadCommand:
    """Test the download command."""

    @pytest.fixture(autouse=True)
    def _setup(self, source_url, temp_dir):
        self.runner = CliRunner()
        self.url = source_url
        self.out = temp_dir / "out"

    def _invoke(self, *args, input=None):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            return self.runner.invoke(
                main_app,
                ["--url", self.url, "--quiet", "download", *args, "--output-dir", str(self.out)],
                input=input,
            )

    def test_download_json(self):
        result = self._invoke("Customers")

        assert result.exit_code == 0, result.output
        data = json.loads((self.out / "customers.json").read_text(encoding="utf-8"))
        assert len(data) == 3
        assert data[0]["name"] == "Alice"
        assert "3 rows" in result.output

    def test_download_with_progress(self):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            result = self.runner.invoke(
                main_app,
                ["--url", self.url, "download", "Customers", "--output-dir", str(self.out)],
            )

        assert result.exit_code == 0, result.output
        assert "Total rows downloaded: 3" in result.output
        assert "Configuration" in result.output

    def test_download_csv(self):
        result = self._invoke("Customers", "--format", "csv")

        assert result.exit_code == 0, result.output
        content = (self.out / "customers.csv").read_text(encoding="utf-8")
        assert content.startswith("id||name||balance||notes||raw\n")

    def test_download_with_fields(self, fields_file):
        result = self._invoke("Customers", "--fields", str(fields_file), "--format", "tsv")

        assert result.exit_code == 0, result.output
        lines = (self.out / "customers.tsv").read_text(encoding="utf-8").splitlines()
        assert lines[0] == "ID\tName"
        assert lines[1] == "1\tAlice"

    def test_download_parquet_without_fields(self):
        result = self._invoke("Customers", "--format", "parquet")

        assert result.exit_code == 1
        assert not (self.out / "customers.parquet").exists()

    def test_download_missing_table(self):
        result = self._invoke("Nope")

        assert result.exit_code == 1
        assert "tabledump tables" in result.output

    def test_download_sqlite_decline(self):
        self.out.mkdir(parents=True)
        conn = sqlite3.connect(self.out / "output.sqlite3")
        conn.execute("CREATE TABLE customers (id TEXT)")
        conn.commit()
        conn.close()

        result = self._invoke("Customers", "--format", "sqlite3", input="n\n")

        assert result.exit_code == 0, result.output
        assert "Aborted by user." in result.output

    def test_download_sqlite_accept(self):
        self._invoke("Customers", "--format", "sqlite3")

        result = self._invoke("Customers", "--format", "sqlite3", input="y\n")

        assert result.exit_code == 0, result.output
        conn = sqlite3.connect(self.out / "output.sqlite3")
        try:
            assert conn.execute("SELECT count(*) FROM customers").fetchone() == (3,)
        finally:
            conn.close()

    def test_download_invalid_batch_size(self):
        result = self._invoke("Customers", "--batch-size", "0")
        assert result.exit_code != 0


@pytest.mark.cli
class TestConnectionSettings:
    """Test connection configuration errors."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_missing_connection_parameters(self, temp_dir):
        with self.runner.isolated_filesystem(temp_dir=temp_dir):
            with patch.dict(os.environ, CLEAN_ENV, clear=True):
                result = self.runner.invoke(main_app, ["--server", "db.local", "tables"])

        assert result.exit_code == 1
        assert "missing required connection parameters" in result.output

    def test_missing_config_file(self, temp_dir):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            result = self.runner.invoke(
                main_app, ["--config", str(temp_dir / "nope.yaml"), "tables"]
            )

        assert result.exit_code == 1


@pytest.mark.cli
class TestSchemaCommands:
    """Test the tables, fields and query commands."""

    @pytest.fixture(autouse=True)
    def _setup(self, source_url):
        self.runner = CliRunner()
        self.url = source_url

    def _invoke(self, *args):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            return self.runner.invoke(main_app, ["--url", self.url, *args])

    def test_tables(self):
        result = self._invoke("tables")

        assert result.exit_code == 0, result.output
        assert "Customers" in result.output
        assert "Orders" in result.output

    def test_fields(self):
        result = self._invoke("fields", "Orders")

        assert result.exit_code == 0, result.output
        assert "order_id" in result.output
        assert "customer_id" in result.output

    def test_fields_missing_table(self):
        result = self._invoke("fields", "Nope")

        assert result.exit_code == 1
        assert "tabledump tables" in result.output

    def test_query(self):
        result = self.runner.invoke(main_app, ["query", "Customers"])

        assert result.exit_code == 0
        assert "SELECT * FROM [Customers]" in result.output

    def test_query_with_fields(self, fields_file):
        result = self.runner.invoke(main_app, ["query", "Customers", "--fields", str(fields_file)])

        assert result.exit_code == 0
        assert "SELECT ID, Name FROM [Customers]" in result.output

    def test_query_with_empty_fields_file(self, temp_dir):
        empty = temp_dir / "empty.txt"
        empty.write_text("\n")

        result = self.runner.invoke(main_app, ["query", "Customers", "--fields", str(empty)])

        assert result.exit_code == 1
        assert "no fields found" in result.output


@pytest.mark.cli
class TestMiscCommands:
    """Test version, help and init-config."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_version_command(self):
        result = self.runner.invoke(main_app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_option(self):
        result = self.runner.invoke(main_app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self):
        result = self.runner.invoke(main_app, ["--help"])

        assert result.exit_code == 0
        assert "download" in result.output

    def test_init_config(self, temp_dir):
        path = temp_dir / "tabledump.yaml"

        result = self.runner.invoke(main_app, ["init-config", str(path)])

        assert result.exit_code == 0
        data = yaml.safe_load(path.read_text())
        assert data["output"]["batch_size"] == 10000

    def test_init_config_refuses_overwrite(self, temp_dir):
        path = temp_dir / "tabledump.yaml"
        path.write_text("keep: true\n")

        result = self.runner.invoke(main_app, ["init-config", str(path)])

        assert result.exit_code == 1
        assert path.read_text() == "keep: true\n"
