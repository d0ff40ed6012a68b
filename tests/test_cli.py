"""Essential CLI tests."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from perennial.cli import build_store, cli


@pytest.fixture
def cli_runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def populated_store(store, make_renewal):
    store.import_renewal(make_renewal("abc"))
    store.import_renewal(make_renewal("def"))
    return store


def invoke(runner, args, config, store, **kwargs):
    return runner.invoke(cli, args, obj={"config": config, "store": store}, **kwargs)


class TestCLIBasics:
    """Test essential CLI functionality."""

    def test_cli_help(self, cli_runner):
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Perennial - manage stored renewals" in result.output
        assert "list" in result.output
        assert "cancel" in result.output
        assert "encrypt" in result.output

    def test_config_show(self, cli_runner, config, store):
        result = invoke(cli_runner, ["config", "show"], config, store)

        assert result.exit_code == 0
        assert "Renewal Directory" in result.output

    def test_config_init(self, cli_runner, config, store, tmp_path):
        path = tmp_path / "perennial.toml"

        result = invoke(cli_runner, ["config", "init", "--path", str(path)], config, store)

        assert result.exit_code == 0
        assert path.exists()

    def test_build_store_loads_entry_points(self, config):
        with patch("perennial.cli.PluginRegistry") as mock_registry:
            build_store(config)

        mock_registry.return_value.load_entry_points.assert_called_once_with("perennial.plugins")


class TestListCommand:
    """Test the list command."""

    def test_list_empty(self, cli_runner, config, store):
        result = invoke(cli_runner, ["list"], config, store)

        assert result.exit_code == 0
        assert "No renewals found" in result.output

    def test_list_renewals(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["list"], config, populated_store)

        assert result.exit_code == 0
        assert "abc" in result.output
        assert "def" in result.output

    def test_list_by_id(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["list", "--id", "def"], config, populated_store)

        assert result.exit_code == 0
        assert "def" in result.output
        assert "abc.example.com" not in result.output


class TestCancelCommands:
    """Test cancel and clear."""

    def test_cancel(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["cancel", "abc"], config, populated_store)

        assert result.exit_code == 0
        assert "Cancelled abc.example.com" in result.output
        assert not config.renewal_file("abc").exists()
        assert [r.id for r in populated_store.list()] == ["def"]

    def test_cancel_unknown(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["cancel", "missing"], config, populated_store)

        assert result.exit_code == 1
        assert "Renewal missing not found" in result.output

    def test_clear_with_confirmation_flag(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["clear", "--yes"], config, populated_store)

        assert result.exit_code == 0
        assert "Cancelled 2 renewals" in result.output
        assert populated_store.list() == []

    def test_clear_declined(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["clear"], config, populated_store, input="n\n")

        assert result.exit_code == 0
        assert len(populated_store.list()) == 2


class TestEncryptCommand:
    """Test the encrypt command."""

    def test_encrypt(self, cli_runner, config, populated_store):
        result = invoke(cli_runner, ["encrypt"], config, populated_store)

        assert result.exit_code == 0
        assert "Rewrote 2 renewals" in result.output

    def test_encrypt_write_failure(self, cli_runner, config, populated_store):
        with patch("perennial.storage.writer.write_atomic", side_effect=OSError("disk full")):
            result = invoke(cli_runner, ["encrypt"], config, populated_store)

        assert result.exit_code == 1
