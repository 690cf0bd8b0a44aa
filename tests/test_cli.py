"""Tests for the command-line interface."""

import json

import pytest
import yaml
from click.testing import CliRunner

from metabind import cli as cli_module
from metabind.cli import cli


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setattr(cli_module.console, "width", 200)
    return CliRunner()


SNAPSHOT = """
get_catalogs:
  - {TABLE_CAT: main}
get_tables:
  cases:
    - arguments: [main, "", null, null]
      rows:
        - {TABLE_CAT: main, TABLE_SCHEM: null, TABLE_NAME: ledger, TABLE_TYPE: TABLE}
"""


class TestExtractCommand:
    """Tests for metabind extract."""

    def test_sqlite_to_json(self, runner, bank_db, tmp_path):
        output = tmp_path / "bank.json"

        result = runner.invoke(cli, ["extract", "--sqlite", str(bank_db), "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "Metadata written to" in result.output
        assert "Extraction Summary" in result.output
        document = json.loads(output.read_text())
        assert document["entity_type"] == "Catalog"
        schema = document["entities"][0]["schemas"][0]
        assert schema["virtual"] is True
        assert [t["table_name"] for t in schema["tables"]] == ["accounts", "customers", "v_balances"]
        assert len(document["entities"][0]["cross_references"]) == 1

    def test_sqlite_to_yaml_with_suppression(self, runner, bank_db, tmp_path):
        output = tmp_path / "bank.yaml"

        result = runner.invoke(cli, [
            "extract", "--sqlite", str(bank_db),
            "--suppress", "table/columns", "--suppress", "catalog/cross_references",
            "--format", "yaml", "--output", str(output),
        ])

        assert result.exit_code == 0, result.output
        document = yaml.safe_load(output.read_text())
        tables = document["entities"][0]["schemas"][0]["tables"]
        assert all(t["columns"] == [] for t in tables)
        assert document["entities"][0]["cross_references"] == []

    def test_allow_empty(self, runner, bank_db, tmp_path):
        output = tmp_path / "bank.json"

        result = runner.invoke(cli, [
            "extract", "--sqlite", str(bank_db), "--allow-empty", "--output", str(output),
        ])

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text())["entities"][0]["schemas"] == []

    def test_config_file(self, runner, bank_db, tmp_path):
        config = tmp_path / "extract.yaml"
        config.write_text("suppress:\n  - schema/tables\noutput_format: yaml\n")
        output = tmp_path / "bank.yaml"

        result = runner.invoke(cli, [
            "extract", "--sqlite", str(bank_db), "--config", str(config), "--output", str(output),
        ])

        assert result.exit_code == 0, result.output
        document = yaml.safe_load(output.read_text())
        assert document["entities"][0]["schemas"][0]["tables"] == []

    def test_invalid_config(self, runner, bank_db, tmp_path):
        config = tmp_path / "extract.yaml"
        config.write_text("- schema/tables\n")

        result = runner.invoke(cli, ["extract", "--sqlite", str(bank_db), "--config", str(config)])

        assert result.exit_code == 1
        assert "Invalid config" in result.output

    def test_unknown_path_warning(self, runner, bank_db, tmp_path):
        result = runner.invoke(cli, [
            "extract", "--sqlite", str(bank_db), "--suppress", "table/colums",
            "--output", str(tmp_path / "bank.json"),
        ])

        assert result.exit_code == 0, result.output
        assert "table/colums names no field" in result.output

    def test_requires_one_source(self, runner):
        result = runner.invoke(cli, ["extract"])

        assert result.exit_code == 1
        assert "Specify exactly one of" in result.output

    def test_rejects_two_sources(self, runner, bank_db, tmp_path):
        snapshot = tmp_path / "snapshot.yaml"
        snapshot.write_text(SNAPSHOT)

        result = runner.invoke(cli, ["extract", "--sqlite", str(bank_db), "--snapshot", str(snapshot)])

        assert result.exit_code == 1

    def test_snapshot_echo(self, runner, tmp_path):
        snapshot = tmp_path / "snapshot.yaml"
        snapshot.write_text(SNAPSHOT)

        result = runner.invoke(cli, ["extract", "--snapshot", str(snapshot)])

        assert result.exit_code == 0, result.output
        assert '"entity_type": "Catalog"' in result.output
        assert '"table_name": "ledger"' in result.output

    def test_scoped_snapshot(self, runner, tmp_path):
        snapshot = tmp_path / "snapshot.yaml"
        snapshot.write_text(SNAPSHOT)
        output = tmp_path / "schemas.json"

        result = runner.invoke(cli, [
            "extract", "--snapshot", str(snapshot), "--catalog", "main", "--output", str(output),
        ])

        assert result.exit_code == 0, result.output
        document = json.loads(output.read_text())
        assert document["entity_type"] == "Schema"
        assert document["entities"][0]["virtual"] is True
        assert document["entities"][0]["tables"][0]["table_name"] == "ledger"


class TestPathsCommand:
    """Tests for metabind paths."""

    def test_lists_collections(self, runner):
        result = runner.invoke(cli, ["paths", "--kind", "collection"])

        assert result.exit_code == 0, result.output
        assert "Suppressible Paths" in result.output
        assert "table/columns" in result.output
        assert "get_best_row_identifier" in result.output
        assert "column/column_name" not in result.output

    def test_lists_everything(self, runner):
        result = runner.invoke(cli, ["paths"])

        assert result.exit_code == 0, result.output
        assert "column/column_name" in result.output
        assert "catalog/cross_references" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
