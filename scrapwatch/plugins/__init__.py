"""Plugin interfaces and registry for scrapwatch."""

from scrapwatch.plugins.base import PluginKind, PluginSpec, make_plugin_spec
from scrapwatch.plugins.registry import (
    PluginNotFoundError,
    PluginRegistrationError,
    PluginRegistry,
    build_default_registry,
)

__all__ = [
    "PluginKind",
    "PluginSpec",
    "make_plugin_spec",
    "PluginRegistry",
    "PluginRegistrationError",
    "PluginNotFoundError",
    "build_default_registry",
]
