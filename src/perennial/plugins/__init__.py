"""Plugin option schemas and the registry that decodes them.

Plugins themselves live outside this package. They only hand over the
pydantic schemas of the options they persist, keyed by category and by the
discriminator stored in each configuration block.
"""

from perennial.plugins.options import (
    CsrPluginOptions,
    InstallationPluginOptions,
    PluginCategory,
    PluginOptions,
    StorePluginOptions,
    TargetPluginOptions,
    ValidationPluginOptions,
)
from perennial.plugins.registry import PluginRegistry

__all__ = [
    "CsrPluginOptions",
    "InstallationPluginOptions",
    "PluginCategory",
    "PluginOptions",
    "PluginRegistry",
    "StorePluginOptions",
    "TargetPluginOptions",
    "ValidationPluginOptions",
]
