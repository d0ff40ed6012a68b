"""Reading renewal files from the configuration directory."""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from perennial.config import RENEWAL_FILE_SUFFIX, PerennialConfig
from perennial.error_handling import RenewalLoadError, RenewalValidationError
from perennial.renewal import Renewal

logger = logging.getLogger(__name__)


def renewal_id_from_path(path: Path) -> str:
    """Id implied by a renewal file name."""
    return path.name[: -len(RENEWAL_FILE_SUFFIX)]


def describe_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic error into a one-line reason."""
    parts = []
    for item in error.errors(include_url=False):
        location = ".".join(str(part) for part in item["loc"]) or "document"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def check_invariants(renewal: Renewal, path: Path) -> None:
    """Raise RenewalValidationError if a decoded renewal is structurally unsound."""
    expected_id = renewal_id_from_path(path)
    if renewal.id != expected_id:
        msg = f"mismatch between filename and id {renewal.id}"
        raise RenewalValidationError(path, msg)
    if renewal.target_options is None:
        raise RenewalValidationError(path, "missing TargetPluginOptions")
    if renewal.validation_options is None:
        raise RenewalValidationError(path, "missing ValidationPluginOptions")
    if renewal.store_options is None:
        raise RenewalValidationError(path, "missing StorePluginOptions")
    if renewal.csr_options is None and not renewal.target_options.csr_exempt:
        raise RenewalValidationError(path, "missing CsrPluginOptions")
    if renewal.installation_options is None:
        raise RenewalValidationError(path, "missing InstallationPluginOptions")


class RenewalLoader:
    """Decodes and validates every renewal file below the config directory."""

    def __init__(self, config: PerennialConfig, context: dict[str, Any]):
        self.config = config
        self.context = context

    def discover(self) -> list[Path]:
        """Renewal files below the config directory, in path order."""
        if not self.config.config_dir.exists():
            return []
        return sorted(
            path
            for path in self.config.config_dir.rglob(f"*{RENEWAL_FILE_SUFFIX}")
            if path.is_file()
        )

    def load_file(self, path: Path) -> Renewal:
        """Decode and validate one renewal file."""
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise RenewalLoadError(path, str(e), original_error=e) from e

        if not text.strip():
            raise RenewalLoadError(path, "result is empty")

        try:
            renewal = Renewal.model_validate_json(text, context=self.context)
        except ValidationError as e:
            raise RenewalLoadError(
                path,
                describe_validation_error(e),
                original_error=e,
            ) from e

        check_invariants(renewal, path)
        renewal.bind_source(path)
        return renewal

    def load(self) -> list[Renewal]:
        """Load all valid renewals, sorted by due date.

        Files that fail to decode or validate are logged and skipped, as is
        any file repeating an id already read from an earlier path.
        """
        renewals = []
        seen: dict[str, Path] = {}
        for path in self.discover():
            try:
                renewal = self.load_file(path)
                first = seen.get(renewal.id.casefold())
                if first is not None:
                    reason = f"duplicate id {renewal.id}, already read from {first}"
                    raise RenewalValidationError(path, reason)
            except RenewalLoadError as e:
                logger.error(
                    "Unable to read renewal %s: %s",
                    path.name,
                    e.reason,
                    extra={"renewal_file": str(path), "reason": e.reason},
                )
                continue
            seen[renewal.id.casefold()] = path
            renewals.append(renewal)

        renewals.sort(key=lambda renewal: renewal.date)
        logger.debug(
            "Loaded %d renewals from %s",
            len(renewals),
            self.config.config_dir,
        )
        return renewals
