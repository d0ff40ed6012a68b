"""Shared test configuration and fixtures."""

import logging
from datetime import UTC, datetime

import pytest
from cryptography.fernet import Fernet

from conftest_plugins import (
    HttpValidationOptions,
    ManualTargetOptions,
    NoInstallationOptions,
    PemStoreOptions,
    RsaCsrOptions,
    make_registry,
)
from perennial.cli import cleanup_logging
from perennial.config import PerennialConfig
from perennial.renewal import Renewal
from perennial.security.protected import ProtectedString, SecretCipher
from perennial.storage.renewals import RenewalStore


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging_handlers():
    """Automatically cleanup logging handlers after each test to prevent ResourceWarnings."""
    yield
    cleanup_logging()


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temporary directory."""
    return PerennialConfig(
        config_dir=tmp_path / "renewals",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def secret_key():
    return Fernet.generate_key()


@pytest.fixture
def cipher(secret_key):
    return SecretCipher([secret_key])


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def store(config, registry, cipher):
    return RenewalStore(config, registry, cipher)


@pytest.fixture
def make_renewal():
    """Factory for new renewals with a complete set of options."""

    def _make(
        renewal_id: str = "abc",
        *,
        date: datetime | None = None,
        password: str | None = "hunter2",
        **fields,
    ) -> Renewal:
        fields.setdefault("friendly_name", f"{renewal_id}.example.com")
        return Renewal.create(
            id=renewal_id,
            date=date or datetime(2026, 1, 1, tzinfo=UTC),
            target_options=ManualTargetOptions(host=f"{renewal_id}.example.com"),
            validation_options=HttpValidationOptions(path="/var/www"),
            csr_options=RsaCsrOptions(),
            store_options=PemStoreOptions(
                path="/etc/certs",
                password=ProtectedString(password) if password else None,
            ),
            installation_options=NoInstallationOptions(),
            **fields,
        )

    return _make
