"""Test the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from cartridge_evolve import __version__
from cartridge_evolve.cli import cli
from cartridge_evolve.schema.fingerprint import fingerprint
from cartridge_evolve.schema.parser import load_schema


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


def test_version(runner):
    """Test the version option."""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_convert_json(runner, fixtures_dir):
    """Test converting a schema file to the JSON layout."""
    result = runner.invoke(cli, ["convert", str(fixtures_dir / "user_v1.avsc"), "--format", "json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["type"] == "struct"
    assert [f["name"] for f in data["fields"]] == ["id", "name", "age", "country", "email"]
    assert data["fields"][4]["nullable"] is True


def test_convert_table(runner, fixtures_dir):
    """Test the tabular conversion output."""
    result = runner.invoke(cli, ["convert", str(fixtures_dir / "user_v1.avsc")])

    assert result.exit_code == 0
    assert "email" in result.output
    assert "integer" in result.output


def test_convert_unsupported(runner, fixtures_dir):
    """Test conversion failures exit with status 1."""
    result = runner.invoke(cli, ["convert", str(fixtures_dir / "multi_union.avsc")])

    assert result.exit_code == 1
    assert "Cannot convert" in result.output


def test_check_compatible(runner, fixtures_dir):
    """Test a compatible revision."""
    result = runner.invoke(cli, [
        "check",
        str(fixtures_dir / "user_v1.avsc"),
        str(fixtures_dir / "user_v2.avsc"),
    ])

    assert result.exit_code == 0
    assert "✓ Compatible (backward)" in result.output
    assert "new field 'phone' added with default" in result.output


def test_check_incompatible_json(runner, fixtures_dir):
    """Test an incompatible revision exits with status 1."""
    result = runner.invoke(cli, [
        "check",
        str(fixtures_dir / "user_v1.avsc"),
        str(fixtures_dir / "user_v3_breaking.avsc"),
        "--policy", "backward",
        "--json",
    ])

    assert result.exit_code == 1
    data = json.loads(result.output)
    assert data["compatible"] is False
    assert data["policy"] == "backward"
    assert "fields removed from <root>: name" in data["issues"]


def test_check_none_policy(runner, fixtures_dir):
    """Test the none policy accepts a breaking revision."""
    result = runner.invoke(cli, [
        "check",
        str(fixtures_dir / "user_v1.avsc"),
        str(fixtures_dir / "user_v3_breaking.avsc"),
        "-p", "NONE",
    ])

    assert result.exit_code == 0
    assert "no compatibility checking performed" in result.output


def test_check_unparseable_schema(runner, tmp_path, fixtures_dir):
    """Test unparseable schema files exit with status 2."""
    bad = tmp_path / "bad.avsc"
    bad.write_text("{not json")

    result = runner.invoke(cli, ["check", str(fixtures_dir / "user_v1.avsc"), str(bad)])
    assert result.exit_code == 2
    assert "Cannot load schema" in result.output


def test_check_non_utf8_schema(runner, tmp_path, fixtures_dir):
    """Test schema files that are not valid UTF-8 exit with status 2."""
    bad = tmp_path / "bad.avsc"
    bad.write_bytes(b"\xff\xfe\x00")

    result = runner.invoke(cli, ["check", str(fixtures_dir / "user_v1.avsc"), str(bad)])
    assert result.exit_code == 2
    assert "Cannot load schema" in result.output


def test_convert_non_utf8_schema(runner, tmp_path):
    """Test convert reports a schema file that is not valid UTF-8."""
    bad = tmp_path / "bad.avsc"
    bad.write_bytes(b"\xff\xfe\x00")

    result = runner.invoke(cli, ["convert", str(bad)])
    assert result.exit_code == 1
    assert "Cannot convert" in result.output


def test_fingerprint(runner, fixtures_dir):
    """Test printing a schema fingerprint and canonical form."""
    schema_file = fixtures_dir / "user_v1.avsc"
    result = runner.invoke(cli, ["fingerprint", str(schema_file), "--canonical"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == fingerprint(load_schema(schema_file))
    assert json.loads(lines[1])["name"] == "com.example.users.User"


def test_validate_config(runner, sample_config_file):
    """Test validating a configuration file."""
    result = runner.invoke(cli, ["validate", "--config", str(sample_config_file)])

    assert result.exit_code == 0
    assert "✓ Configuration is valid" in result.output


def test_validate_missing_schema(runner, tmp_path):
    """Test validation fails when a table schema is missing."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("tables:\n  - name: users\n    schema_path: missing.avsc\n")

    result = runner.invoke(cli, ["validate", "-c", str(config_file)])
    assert result.exit_code == 1
    assert "✗ Configuration is invalid" in result.output


def test_init_creates_loadable_config(runner, tmp_path):
    """Test init writes a configuration template."""
    output = tmp_path / "cartridge-evolve.yaml"
    result = runner.invoke(cli, ["init", "--output", str(output)])

    assert result.exit_code == 0
    assert output.exists()
    text = output.read_text()
    assert "default_policy: backward" in text
    assert "/metrics" not in text


def test_init_keeps_existing_file(runner, tmp_path):
    """Test init does not overwrite without confirmation."""
    output = tmp_path / "cartridge-evolve.yaml"
    output.write_text("existing")

    result = runner.invoke(cli, ["init", "-o", str(output)], input="n\n")

    assert result.exit_code == 0
    assert output.read_text() == "existing"
