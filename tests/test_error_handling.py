"""Tests for the error hierarchy and user-facing display."""

import logging
from pathlib import Path

from perennial.error_handling import (
    ConfigurationError,
    ErrorCategory,
    PerennialError,
    RenewalLoadError,
    RenewalValidationError,
    SecretDecryptionError,
    UnknownPluginError,
    handle_error,
)
from perennial.plugins.options import PluginCategory


class TestPerennialError:
    """Test the base PerennialError class."""

    def test_basic_error_creation(self):
        error = PerennialError(
            "Test error message",
            ErrorCategory.CONFIGURATION,
            solution="Fix your config",
        )

        assert error.message == "Test error message"
        assert error.category == ErrorCategory.CONFIGURATION
        assert error.solution == "Fix your config"
        assert error.recoverable is True
        assert error.log_level == logging.ERROR

    def test_error_display(self, capsys):
        error = PerennialError(
            "Renewal directory is not writable",
            ErrorCategory.FILESYSTEM,
            solution="Check permissions",
            details="Permission denied",
        )

        error.display_to_user()
        captured = capsys.readouterr()

        assert "Filesystem Error" in captured.out
        assert "Renewal directory is not writable" in captured.out
        assert "Check permissions" in captured.out
        assert "Permission denied" in captured.out

    def test_non_recoverable_error(self, capsys):
        PerennialError("Fatal", ErrorCategory.SYSTEM, recoverable=False).display_to_user()

        assert "requires intervention" in capsys.readouterr().out


class TestSpecificErrors:
    """Test the specialised error types."""

    def test_configuration_error_points_at_file(self):
        error = ConfigurationError("Bad value", config_path=Path("/etc/perennial.toml"))

        assert error.category == ErrorCategory.CONFIGURATION
        assert "/etc/perennial.toml" in error.solution

    def test_unknown_plugin_names_category_and_discriminator(self):
        error = UnknownPluginError(PluginCategory.INSTALLATION, "iis")

        assert str(error) == "Unknown installation plugin 'iis'"
        assert error.plugin_category is PluginCategory.INSTALLATION
        assert error.plugin_name == "iis"
        assert error.category == ErrorCategory.DECODE
        assert isinstance(error, ValueError)

    def test_load_errors(self):
        error = RenewalValidationError(Path("/renewals/abc.renewal.json"), "missing StorePluginOptions")

        assert isinstance(error, RenewalLoadError)
        assert error.category == ErrorCategory.VALIDATION
        assert error.reason == "missing StorePluginOptions"
        assert str(error) == "Unable to read renewal abc.renewal.json: missing StorePluginOptions"

    def test_secret_decryption_error_has_solution(self):
        error = SecretDecryptionError()

        assert error.category == ErrorCategory.SECRET
        assert "previous_secret_keys" in error.solution


class TestHandleError:
    """Test conversion of arbitrary exceptions."""

    def test_os_error_is_filesystem(self, capsys):
        handle_error(PermissionError("denied"))

        assert "Filesystem Error" in capsys.readouterr().out

    def test_other_errors_are_system(self, capsys):
        handle_error(RuntimeError("boom"))

        assert "System Error" in capsys.readouterr().out

    def test_perennial_error_displayed_as_is(self, capsys):
        handle_error(SecretDecryptionError())

        assert "Secret Error" in capsys.readouterr().out
