"""Renewal records and their execution history."""

import secrets
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SerializationInfo,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_pascal

from perennial.error_handling import PluginOptionsError
from perennial.plugins.options import (
    CsrPluginOptions,
    InstallationPluginOptions,
    PluginCategory,
    PluginOptions,
    StorePluginOptions,
    TargetPluginOptions,
    ValidationPluginOptions,
)
from perennial.security.protected import ProtectedString

REGISTRY_CONTEXT_KEY = "registry"

OPTION_FIELDS: dict[str, PluginCategory] = {
    "target_options": PluginCategory.TARGET,
    "validation_options": PluginCategory.VALIDATION,
    "csr_options": PluginCategory.CSR,
    "store_options": PluginCategory.STORE,
    "installation_options": PluginCategory.INSTALLATION,
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class EntryState(Enum):
    """Persistence bookkeeping for a renewal held in memory."""

    CLEAN = "clean"
    NEW = "new"
    UPDATED = "updated"
    DELETED = "deleted"


class RenewResult(BaseModel):
    """Outcome of one execution attempt."""

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    success: bool = False
    error_message: str | None = None

    @classmethod
    def succeeded(cls) -> "RenewResult":
        return cls(success=True)

    @classmethod
    def failed(cls, message: str) -> "RenewResult":
        return cls(success=False, error_message=message)

    @field_validator("date", mode="after")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class Renewal(BaseModel):
    """A scheduled, recurring task and the plugin options it runs with.

    The persisted document is the model itself. Whether the entry still has
    to be written or removed is tracked separately in :attr:`state`, which
    is never serialized.
    """

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    friendly_name: str | None = None
    last_friendly_name: str | None = None
    date: datetime
    history: list[RenewResult] = Field(default_factory=list)

    target_options: TargetPluginOptions | None = Field(
        default=None,
        alias=PluginCategory.TARGET.document_key,
    )
    validation_options: ValidationPluginOptions | None = Field(
        default=None,
        alias=PluginCategory.VALIDATION.document_key,
    )
    csr_options: CsrPluginOptions | None = Field(
        default=None,
        alias=PluginCategory.CSR.document_key,
    )
    store_options: StorePluginOptions | None = Field(
        default=None,
        alias=PluginCategory.STORE.document_key,
    )
    installation_options: InstallationPluginOptions | None = Field(
        default=None,
        alias=PluginCategory.INSTALLATION.document_key,
    )

    pfx_password: ProtectedString | None = None
    test_mode: bool | None = None

    _state: EntryState = PrivateAttr(default=EntryState.CLEAN)
    _source: Path | None = PrivateAttr(default=None)

    @classmethod
    def create(cls, *, date: datetime, **fields: Any) -> "Renewal":
        """Build a renewal that has never been stored, with a fresh id."""
        fields.setdefault("id", secrets.token_urlsafe(16))
        renewal = cls(date=date, **fields)
        renewal.mark_new()
        return renewal

    @field_validator("date", mode="after")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_validator("history", mode="before")
    @classmethod
    def history_not_null(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator(*OPTION_FIELDS, mode="before")
    @classmethod
    def decode_options(cls, v: Any, info: ValidationInfo) -> Any:
        """Resolve a configuration block to the schema its plugin registered."""
        if v is None or isinstance(v, PluginOptions):
            return v
        context = info.context if isinstance(info.context, dict) else {}
        registry = context.get(REGISTRY_CONTEXT_KEY)
        if registry is None:
            msg = "A plugin registry is required to decode plugin options"
            raise PluginOptionsError(msg)
        return registry.decode(OPTION_FIELDS[info.field_name], v, context=context)

    @field_serializer(*OPTION_FIELDS, when_used="unless-none")
    def encode_options(self, v: PluginOptions, info: SerializationInfo) -> dict[str, Any]:
        context = info.context if isinstance(info.context, dict) else None
        registry = context.get(REGISTRY_CONTEXT_KEY) if context else None
        if registry is not None:
            return registry.encode(v, context=context)
        return v.to_document(context)

    @model_validator(mode="after")
    def default_last_friendly_name(self) -> "Renewal":
        if not self.last_friendly_name:
            self.last_friendly_name = self.friendly_name
        return self

    @property
    def state(self) -> EntryState:
        return self._state

    @property
    def source(self) -> Path | None:
        """File this renewal was read from or last written to, if any."""
        return self._source

    def bind_source(self, path: Path | None) -> None:
        self._source = path

    @property
    def is_new(self) -> bool:
        return self._state is EntryState.NEW

    @property
    def is_updated(self) -> bool:
        return self._state is EntryState.UPDATED

    @property
    def is_deleted(self) -> bool:
        return self._state is EntryState.DELETED

    @property
    def needs_write(self) -> bool:
        return self._state in (EntryState.NEW, EntryState.UPDATED)

    def mark_new(self) -> None:
        if self._state is not EntryState.DELETED:
            self._state = EntryState.NEW

    def mark_updated(self) -> None:
        # A record that was never written stays new until its first write.
        if self._state is EntryState.CLEAN:
            self._state = EntryState.UPDATED

    def mark_deleted(self) -> None:
        self._state = EntryState.DELETED

    def mark_clean(self) -> None:
        if self._state is not EntryState.DELETED:
            self._state = EntryState.CLEAN

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.history if result.success)

    @property
    def last_result(self) -> RenewResult | None:
        return self.history[-1] if self.history else None

    @property
    def display_name(self) -> str:
        return self.last_friendly_name or self.friendly_name or self.id

    def __str__(self) -> str:
        text = (
            f"{self.display_name} - renewed {self.success_count} times, "
            f"due after {self.date:%Y-%m-%d %H:%M}"
        )
        last = self.last_result
        if last is not None and not last.success:
            text += f", error: {last.error_message or 'unknown'}"
        return text
