"""Plugin registry and entry-point loading."""

import logging
from collections.abc import Callable
from importlib.metadata import entry_points
from typing import Any

from scrapwatch.plugins.base import (
    PluginKind,
    PluginSpec,
    RegistryContributor,
    make_plugin_spec,
    normalize_plugin_name,
)

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "scrapwatch.plugins"


class PluginRegistrationError(Exception):
    """Raised when a destination type or feed client name is taken twice."""


class PluginNotFoundError(Exception):
    """Raised when a configured destination type or feed client is unknown."""


class PluginRegistry:
    """Destination and feed client factories, keyed by kind and name.

    Built once at startup, before the event loop runs, and only read after.
    """

    def __init__(self):
        self._plugins: dict[tuple[PluginKind, str], PluginSpec] = {}

    def register(self, spec: PluginSpec) -> None:
        key = (spec.kind, normalize_plugin_name(spec.name))
        existing = self._plugins.get(key)
        if existing is not None:
            raise PluginRegistrationError(
                f"{spec.kind.value} {spec.name!r} already registered (version {existing.version})"
            )
        self._plugins[key] = spec
        logger.debug("Registered %s %s %s", spec.kind.value, spec.name, spec.version)

    def register_factory(
        self,
        kind: PluginKind,
        name: str,
        version: str,
        factory: Callable[[dict[str, Any]], Any],
        description: str = "",
    ) -> None:
        self.register(make_plugin_spec(kind, name, version, factory, description))

    def create(self, kind: PluginKind, name: str, config: dict[str, Any] | None = None) -> Any:
        """Build a destination or feed client from its config mapping."""
        spec = self._plugins.get((kind, normalize_plugin_name(name)))
        if spec is None:
            raise PluginNotFoundError(f"No {kind.value} named {name!r}")
        return spec.factory(config or {})

    def has_plugin(self, kind: PluginKind, name: str) -> bool:
        return (kind, normalize_plugin_name(name)) in self._plugins

    def names(self, kind: PluginKind) -> list[str]:
        """Sorted names registered for ``kind``."""
        return sorted(name for plugin_kind, name in self._plugins if plugin_kind is kind)

    def load_entrypoint_plugins(self, group: str = ENTRY_POINT_GROUP) -> int:
        """Load feed clients and extra destinations from installed packages.

        An entry point may name an object with ``register_plugins(registry)``
        or a callable taking the registry. A broken entry point is logged and
        skipped.
        """
        loaded = 0
        for entry_point in entry_points().select(group=group):
            try:
                contributor = entry_point.load()
                if isinstance(contributor, RegistryContributor):
                    contributor.register_plugins(self)
                elif callable(contributor):
                    contributor(self)
                else:
                    raise PluginRegistrationError(
                        f"Unsupported entry point object for {entry_point.name}: {type(contributor).__name__}"
                    )
                loaded += 1
            except Exception as exc:
                logger.warning("Failed loading plugin entry point %s: %s", entry_point.name, exc)
        return loaded


def build_default_registry(load_entrypoints: bool = True) -> PluginRegistry:
    """Registry with the built-in destinations and any installed plugins."""
    from scrapwatch.plugins.builtin import register_plugins

    registry = PluginRegistry()
    register_plugins(registry)
    if load_entrypoints:
        registry.load_entrypoint_plugins()
    return registry
