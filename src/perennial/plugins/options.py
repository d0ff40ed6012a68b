"""Base schemas for plugin configuration blocks."""

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_pascal

DISCRIMINATOR_KEY = "Plugin"


class PluginCategory(Enum):
    """Pluggable roles of a renewal, keyed by their document field."""

    TARGET = "target"
    VALIDATION = "validation"
    CSR = "csr"
    STORE = "store"
    INSTALLATION = "installation"

    @property
    def document_key(self) -> str:
        """Name of the renewal document field carrying this block."""
        return {
            PluginCategory.TARGET: "TargetPluginOptions",
            PluginCategory.VALIDATION: "ValidationPluginOptions",
            PluginCategory.CSR: "CsrPluginOptions",
            PluginCategory.STORE: "StorePluginOptions",
            PluginCategory.INSTALLATION: "InstallationPluginOptions",
        }[self]


class PluginOptions(BaseModel):
    """Options persisted for one plugin.

    Concrete schemas subclass one of the per-category bases below and set
    ``plugin_name``, the value stored under the ``Plugin`` key. Fields are
    written in PascalCase on disk.
    """

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )

    category: ClassVar[PluginCategory]
    plugin_name: ClassVar[str]

    def to_document(self, context: dict[str, Any] | None = None) -> dict[str, Any]:
        """Serialize to the on-disk shape, discriminator first."""
        body = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            context=context,
        )
        return {DISCRIMINATOR_KEY: self.plugin_name, **body}

    def __str__(self) -> str:
        return f"{self.category.value}:{self.plugin_name}"


class TargetPluginOptions(PluginOptions):
    """Base for target selection options."""

    category: ClassVar[PluginCategory] = PluginCategory.TARGET

    # Targets that bring their own signing request need no CSR options.
    csr_exempt: ClassVar[bool] = False


class ValidationPluginOptions(PluginOptions):
    """Base for validation method options."""

    category: ClassVar[PluginCategory] = PluginCategory.VALIDATION


class CsrPluginOptions(PluginOptions):
    """Base for request generation options."""

    category: ClassVar[PluginCategory] = PluginCategory.CSR


class StorePluginOptions(PluginOptions):
    """Base for storage options."""

    category: ClassVar[PluginCategory] = PluginCategory.STORE


class InstallationPluginOptions(PluginOptions):
    """Base for installation options."""

    category: ClassVar[PluginCategory] = PluginCategory.INSTALLATION


CATEGORY_BASES: dict[PluginCategory, type[PluginOptions]] = {
    PluginCategory.TARGET: TargetPluginOptions,
    PluginCategory.VALIDATION: ValidationPluginOptions,
    PluginCategory.CSR: CsrPluginOptions,
    PluginCategory.STORE: StorePluginOptions,
    PluginCategory.INSTALLATION: InstallationPluginOptions,
}
