"""Writing renewal changes back to the configuration directory."""

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from perennial.config import PerennialConfig
from perennial.error_handling import RenewalWriteError
from perennial.renewal import Renewal

logger = logging.getLogger(__name__)


def write_atomic(path: Path, content: str) -> None:
    """Replace the file at path with content, never leaving it truncated."""
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class RenewalWriter:
    """Applies the pending state of each renewal to disk."""

    def __init__(self, config: PerennialConfig, context: dict[str, Any]):
        self.config = config
        self.context = context

    def renewal_file(self, renewal: Renewal) -> Path:
        """File backing a renewal: where it was read from, else the default location."""
        if renewal.source is not None:
            return renewal.source
        if not renewal.id or any(sep in renewal.id for sep in ("/", "\\", os.sep)):
            msg = f"Renewal id '{renewal.id}' cannot be used as a file name"
            raise RenewalWriteError(msg)
        return self.config.renewal_file(renewal.id)

    def serialize(self, renewal: Renewal) -> str:
        """Render a renewal as its on-disk JSON document."""
        return renewal.model_dump_json(
            by_alias=True,
            exclude_none=True,
            indent=2,
            context=self.context,
        )

    def write(self, renewals: Iterable[Renewal]) -> list[Renewal]:
        """Delete, write or skip each renewal according to its state.

        Returns the renewals that remain, sorted by due date. I/O errors are
        raised as they happen; renewals handled earlier in the pass stay
        written.
        """
        entries = list(renewals)
        for renewal in entries:
            if renewal.is_deleted:
                file = self.renewal_file(renewal)
                if file.exists():
                    file.unlink()
                    logger.debug("Removed %s", file.name)
            elif renewal.needs_write:
                file = self.renewal_file(renewal)
                file.parent.mkdir(parents=True, exist_ok=True)
                write_atomic(file, self.serialize(renewal))
                renewal.bind_source(file)
                renewal.mark_clean()
                logger.debug("Wrote %s", file.name)

        remaining = [renewal for renewal in entries if not renewal.is_deleted]
        remaining.sort(key=lambda renewal: renewal.date)
        return remaining
