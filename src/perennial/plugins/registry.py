"""Registry of plugin option schemas and the polymorphic options codec.

Plugins publish the schema of the options they persist. Each schema is keyed
by its category and its ``plugin_name``, which is the discriminator written
under the ``Plugin`` key of a configuration block. Decoding looks the
discriminator up within the block's category; there is no fallback schema,
so an unknown discriminator is always an error.

Schemas are added explicitly with :meth:`PluginRegistry.register` or
discovered through the ``perennial.plugins`` entry-point group.
"""

import importlib.metadata
import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from perennial.error_handling import (
    PluginOptionsError,
    PluginRegistrationError,
    UnknownPluginError,
)
from perennial.plugins.options import (
    CATEGORY_BASES,
    DISCRIMINATOR_KEY,
    PluginCategory,
    PluginOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_POINT_GROUP = "perennial.plugins"

OptionsT = TypeVar("OptionsT", bound=type[PluginOptions])


class PluginRegistry:
    """Maps ``(category, discriminator)`` to plugin option schemas."""

    def __init__(self) -> None:
        self._schemas: dict[PluginCategory, dict[str, type[PluginOptions]]] = {
            category: {} for category in PluginCategory
        }

    def register(self, schema: OptionsT) -> OptionsT:
        """Register a schema. Returns it so this can be used as a decorator."""
        label = getattr(schema, "__name__", repr(schema))
        category = getattr(schema, "category", None)
        name = getattr(schema, "plugin_name", None)
        if not isinstance(category, PluginCategory) or not issubclass(
            schema,
            CATEGORY_BASES[category],
        ):
            msg = f"{label} does not derive from a plugin category base"
            raise PluginRegistrationError(msg)
        if not isinstance(name, str) or not name:
            msg = f"{label} does not declare a plugin_name"
            raise PluginRegistrationError(msg)

        key = name.lower()
        existing = self._schemas[category].get(key)
        if existing is not None and existing is not schema:
            msg = (
                f"{category.value} plugin '{name}' is already registered "
                f"by {existing.__name__}"
            )
            raise PluginRegistrationError(msg)

        self._schemas[category][key] = schema
        logger.debug("Registered %s plugin '%s'", category.value, name)
        return schema

    def lookup(self, category: PluginCategory, name: str) -> type[PluginOptions]:
        """Return the schema for a discriminator or raise UnknownPluginError."""
        schema = self._schemas[category].get(name.lower())
        if schema is None:
            raise UnknownPluginError(category, name)
        return schema

    def names(self, category: PluginCategory) -> list[str]:
        """Discriminators known for a category."""
        return sorted(schema.plugin_name for schema in self._schemas[category].values())

    def __len__(self) -> int:
        return sum(len(schemas) for schemas in self._schemas.values())

    def decode(
        self,
        category: PluginCategory,
        data: Any,
        context: dict[str, Any] | None = None,
    ) -> PluginOptions:
        """Decode one configuration block into its concrete schema."""
        if isinstance(data, PluginOptions):
            if data.category is not category:
                msg = f"Expected {category.value} options, got {data}"
                raise PluginOptionsError(msg)
            return data
        if not isinstance(data, Mapping):
            msg = f"{category.document_key} must be an object"
            raise PluginOptionsError(msg)

        name = data.get(DISCRIMINATOR_KEY)
        if not isinstance(name, str) or not name:
            msg = f"{category.document_key} is missing its '{DISCRIMINATOR_KEY}' field"
            raise PluginOptionsError(msg)

        schema = self.lookup(category, name)
        try:
            return schema.model_validate(data, context=context)
        except ValidationError as e:
            reasons = "; ".join(error["msg"] for error in e.errors(include_url=False))
            msg = f"Invalid {category.value} options for '{name}': {reasons}"
            raise PluginOptionsError(msg, details=str(e), original_error=e) from e

    def encode(
        self,
        options: PluginOptions,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Encode options to their on-disk shape."""
        # Refuse to write blocks that could not be read back.
        self.lookup(options.category, options.plugin_name)
        return options.to_document(context)

    def load_entry_points(self, group: str = DEFAULT_ENTRY_POINT_GROUP) -> int:
        """Register schemas published under an entry-point group.

        Each entry point resolves to a schema class or an iterable of them.
        Entry points that fail to load are logged and skipped.
        """
        registered = 0
        for entry_point in importlib.metadata.entry_points(group=group):
            try:
                loaded = entry_point.load()
                schemas = [loaded] if isinstance(loaded, type) else list(loaded)
                for schema in schemas:
                    self.register(schema)
                    registered += 1
            except Exception as e:
                logger.error(
                    "Failed to load plugin entry point %s: %s",
                    entry_point.name,
                    e,
                    extra={"entry_point": entry_point.value},
                )
        logger.debug("Loaded %d plugin schemas from '%s'", registered, group)
        return registered
