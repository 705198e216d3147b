"""Tests for uriservice.cli via typer.testing.CliRunner."""

from __future__ import annotations

from typer.testing import CliRunner

from uriservice.cli.app import app
from uriservice.client import UriServiceClient

runner = CliRunner()


def invoke(config_file, *args):
    return runner.invoke(app, [*args, "--config", str(config_file), "--env", "test"])


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "uri-service" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "db" in result.output
        assert "reindex" in result.output


class TestDbCommands:
    def test_check_before_init(self, config_file):
        result = invoke(config_file, "db", "check")
        assert result.exit_code == 1
        assert "missing" in result.output

    def test_init_then_check(self, config_file):
        assert invoke(config_file, "db", "init").exit_code == 0
        result = invoke(config_file, "db", "check")
        assert result.exit_code == 0
        assert "required tables exist" in result.output

    def test_bad_environment(self, config_file):
        result = runner.invoke(app, ["db", "check", "--config", str(config_file), "--env", "prod"])
        assert result.exit_code == 1
        assert "InvalidOptsError" in result.output


class TestVocabularyCommands:
    def test_create_and_list(self, config_file):
        invoke(config_file, "db", "init")
        assert invoke(config_file, "vocabularies", "create", "names", "Names").exit_code == 0
        result = invoke(config_file, "vocabularies", "list", "--json")
        assert result.exit_code == 0
        assert '"string_key": "names"' in result.output

    def test_duplicate(self, config_file):
        invoke(config_file, "db", "init")
        invoke(config_file, "vocabularies", "create", "names", "Names")
        result = invoke(config_file, "vocabularies", "create", "names", "Names")
        assert result.exit_code == 1
        assert "ExistingVocabularyStringKeyError" in result.output


class TestReindexCommand:
    def test_reindex(self, config_file):
        invoke(config_file, "db", "init")
        with UriServiceClient.from_config(config_file, "test") as client:
            client.create_vocabulary("names", "Names")
            client.create_term("local", "names", "Smith, John")
            client.index.delete_all()

        result = invoke(config_file, "reindex", "--clear")
        assert result.exit_code == 0
        assert "Indexed 1 terms" in result.output

        result = invoke(config_file, "terms", "search", "names", "smith", "--json")
        assert result.exit_code == 0
        assert '"value": "Smith, John"' in result.output
