"""Renewal store: the cached view of all renewals and the operations on it."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from perennial.config import PerennialConfig
from perennial.plugins.registry import PluginRegistry
from perennial.process_lock import DirectoryLock
from perennial.renewal import REGISTRY_CONTEXT_KEY, Renewal, RenewResult
from perennial.security.protected import CIPHER_CONTEXT_KEY, SecretCipher
from perennial.storage.loader import RenewalLoader
from perennial.storage.writer import RenewalWriter

logger = logging.getLogger(__name__)


def _matches(value: str | None, wanted: str) -> bool:
    return value is not None and value.casefold() == wanted.casefold()


class RenewalStore:
    """Lists and persists renewals kept as one JSON file each.

    The cache is filled from disk on first access and rebuilt from the full
    working set on every mutation, so callers always see the state that was
    just written.
    """

    def __init__(
        self,
        config: PerennialConfig,
        registry: PluginRegistry,
        cipher: SecretCipher | None = None,
    ):
        self.config = config
        self.registry = registry
        self.cipher = cipher or SecretCipher.from_config(config)

        context = {REGISTRY_CONTEXT_KEY: registry, CIPHER_CONTEXT_KEY: self.cipher}
        self.loader = RenewalLoader(config, context)
        self.writer = RenewalWriter(config, context)
        self.lock = DirectoryLock.for_config(config)

        self._cache: list[Renewal] | None = None
        self._mutex = threading.RLock()

    @property
    def renewals(self) -> list[Renewal]:
        """All cached renewals, loading them on first access."""
        with self._mutex:
            if self._cache is None:
                self._cache = self.loader.load()
            return list(self._cache)

    def reload(self) -> list[Renewal]:
        """Discard the cache and read every renewal from disk again."""
        with self._mutex:
            self._cache = None
            return self.renewals

    def flush(self, renewals: Iterable[Renewal]) -> list[Renewal]:
        """Persist the given working set and install it as the cache."""
        with self._mutex, self.lock:
            self._cache = self.writer.write(renewals)
            return list(self._cache)

    def list(
        self,
        id: str | None = None,
        friendly_name: str | None = None,
    ) -> list[Renewal]:
        """Renewals matching every given filter, case-insensitively."""
        result = [renewal for renewal in self.renewals if not renewal.is_deleted]
        if friendly_name:
            result = [r for r in result if _matches(r.last_friendly_name, friendly_name)]
        if id:
            result = [r for r in result if _matches(r.id, id)]
        return result

    def get(self, id: str) -> Renewal | None:
        """The renewal with the given id, if any."""
        matches = self.list(id=id)
        return matches[0] if matches else None

    def _with(self, renewal: Renewal) -> list[Renewal]:
        """Working set: the cache with renewal in place of any entry sharing its id."""
        renewals = []
        for existing in self.renewals:
            if existing is renewal:
                continue
            if existing.id != renewal.id:
                renewals.append(existing)
            elif renewal.source is None:
                # Overwrite the replaced record's file rather than adding a second one
                renewal.bind_source(existing.source)
        renewals.append(renewal)
        return renewals

    def save(self, renewal: Renewal, result: RenewResult) -> None:
        """Record the outcome of a run and persist the renewal."""
        with self._mutex:
            if renewal.is_new:
                renewal.history = []
                logger.info("Adding renewal for %s", renewal.display_name)

            renewal.history.append(result)
            if result.success:
                logger.info("Next renewal scheduled at %s", renewal.date.isoformat())
            renewal.mark_updated()
            self.flush(self._with(renewal))

    def import_renewal(self, renewal: Renewal) -> None:
        """Add a fully built renewal, e.g. one migrated from another system."""
        with self._mutex:
            renewal.mark_new()
            logger.info("Importing renewal for %s", renewal.display_name)
            self.flush(self._with(renewal))

    def cancel(self, renewal: Renewal) -> None:
        """Delete a single renewal."""
        with self._mutex:
            renewal.mark_deleted()
            self.flush(self._with(renewal))
        logger.warning("Renewal %s cancelled", renewal)

    def clear(self) -> None:
        """Delete every renewal."""
        with self._mutex:
            renewals = self.renewals
            for renewal in renewals:
                renewal.mark_deleted()
            self.flush(renewals)
        logger.warning("All renewals cancelled")

    def encrypt(self) -> None:
        """Rewrite every renewal so its secrets use the current key and format."""
        with self._mutex:
            renewals = self.renewals
            for renewal in renewals:
                renewal.mark_updated()
                logger.info(
                    "Re-writing password information for %s",
                    renewal.display_name,
                )
            self.flush(renewals)
