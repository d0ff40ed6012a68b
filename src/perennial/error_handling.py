"""Error types and user-facing error display for Perennial."""

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from perennial.plugins.options import PluginCategory

logger = logging.getLogger(__name__)
console = Console()


class ErrorCategory(Enum):
    """Categories of errors for better user experience."""

    CONFIGURATION = "configuration"
    PLUGIN = "plugin"
    DECODE = "decode"
    VALIDATION = "validation"
    SECRET = "secret"
    FILESYSTEM = "filesystem"
    SYSTEM = "system"
    USER_INPUT = "user_input"


class PerennialError(Exception):
    """Base exception for Perennial with enhanced user experience."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        *,
        solution: str | None = None,
        details: str | None = None,
        recoverable: bool = True,
        log_level: int = logging.ERROR,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.solution = solution
        self.details = details
        self.recoverable = recoverable
        self.log_level = log_level
        self.original_error = original_error

    def display_to_user(self) -> None:
        """Display error to user with helpful context."""
        category_styles = {
            ErrorCategory.CONFIGURATION: ("⚙️", "yellow"),
            ErrorCategory.PLUGIN: ("🧩", "red"),
            ErrorCategory.DECODE: ("📄", "red"),
            ErrorCategory.VALIDATION: ("🔎", "yellow"),
            ErrorCategory.SECRET: ("🔑", "red"),
            ErrorCategory.FILESYSTEM: ("📁", "red"),
            ErrorCategory.SYSTEM: ("💻", "red"),
            ErrorCategory.USER_INPUT: ("⌨️", "yellow"),
        }

        emoji, color = category_styles.get(self.category, ("❌", "red"))

        console.print(
            f"\n{emoji} [bold {color}]{self.category.value.title()} Error[/bold {color}]",
        )
        console.print(f"[{color}]{self.message}[/{color}]")

        if self.details:
            console.print(f"\n[dim]Details:[/dim] {self.details}")

        if self.solution:
            console.print(f"\n[green]💡 Solution:[/green] {self.solution}")

        if self.recoverable:
            console.print(
                "\n[dim]This error may be temporary. You can try again.[/dim]",
            )
        else:
            console.print(
                "\n[dim]This error requires intervention before continuing.[/dim]",
            )

        if self.original_error:
            logger.log(
                self.log_level,
                "%s: %s",
                self.category.value,
                self.message,
                exc_info=self.original_error,
            )
        else:
            logger.log(self.log_level, "%s: %s", self.category.value, self.message)


class ConfigurationError(PerennialError):
    """Configuration-related errors."""

    def __init__(self, message: str, *, config_path: Path | None = None, **kwargs):
        solution = kwargs.pop("solution", None)
        if not solution and config_path:
            solution = f"Check your configuration file at {config_path}"
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            solution=solution,
            **kwargs,
        )


class PluginRegistrationError(PerennialError):
    """A plugin option schema could not be registered."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            ErrorCategory.PLUGIN,
            recoverable=False,
            **kwargs,
        )


class PluginOptionsError(PerennialError, ValueError):
    """A configuration block could not be decoded into a plugin schema."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.DECODE, **kwargs)


class UnknownPluginError(PluginOptionsError):
    """No schema is registered for a discriminator within a category."""

    def __init__(self, category: "PluginCategory", name: str, **kwargs):
        self.plugin_category = category
        self.plugin_name = name
        solution = kwargs.pop(
            "solution",
            f"Install the plugin providing '{name}' or remove the renewal",
        )
        super().__init__(
            f"Unknown {category.value} plugin '{name}'",
            solution=solution,
            **kwargs,
        )


class SecretError(PerennialError, ValueError):
    """Secret values could not be wrapped or unwrapped."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.SECRET, **kwargs)


class SecretDecryptionError(SecretError):
    """An encrypted envelope does not decrypt with any configured key."""

    def __init__(self, message: str = "Unable to decrypt protected value", **kwargs):
        solution = kwargs.pop(
            "solution",
            "Add the key used to write this value to previous_secret_keys",
        )
        super().__init__(message, solution=solution, **kwargs)


class RenewalLoadError(PerennialError):
    """A renewal file could not be decoded."""

    def __init__(
        self,
        path: Path,
        reason: str,
        *,
        category: ErrorCategory = ErrorCategory.DECODE,
        **kwargs,
    ):
        self.path = path
        self.reason = reason
        super().__init__(
            f"Unable to read renewal {path.name}: {reason}",
            category,
            **kwargs,
        )


class RenewalValidationError(RenewalLoadError):
    """A decoded renewal violates a structural invariant."""

    def __init__(self, path: Path, reason: str, **kwargs):
        super().__init__(path, reason, category=ErrorCategory.VALIDATION, **kwargs)


class RenewalWriteError(PerennialError):
    """A renewal cannot be written to its backing file."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.FILESYSTEM, recoverable=False, **kwargs)


def handle_error(
    error: Exception,
    *,
    category: ErrorCategory | None = None,
    **kwargs,
) -> None:
    """Convert generic exceptions to PerennialError and display to user."""
    if isinstance(error, PerennialError):
        error.display_to_user()
        return

    if category is None:
        if isinstance(error, OSError):
            category = ErrorCategory.FILESYSTEM
        else:
            category = ErrorCategory.SYSTEM

    perennial_error = PerennialError(
        message=str(error) or "An unexpected error occurred",
        category=category,
        original_error=error,
        **kwargs,
    )
    perennial_error.display_to_user()
