"""Plugin kinds and metadata for destinations and feed clients."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Protocol, runtime_checkable

if TYPE_CHECKING:
    from scrapwatch.plugins.registry import PluginRegistry


class PluginKind(Enum):
    """Supported plugin extension kinds."""

    NOTIFICATION_CHANNEL = "notification_channel"
    FEED_CLIENT = "feed_client"


@dataclass(frozen=True)
class PluginSpec:
    """Registration metadata for a plugin implementation."""

    kind: PluginKind
    name: str
    version: str
    factory: Callable[[Dict[str, Any]], Any]
    description: str = ""


@runtime_checkable
class RegistryContributor(Protocol):
    """Protocol for entry-point objects that can register plugins."""

    def register_plugins(self, registry: "PluginRegistry") -> None:
        """Register one or more plugins in the provided registry."""


def normalize_plugin_name(name: str) -> str:
    """Normalize plugin names for lookup and deduplication."""

    return name.strip().lower().replace("_", "-")


def make_plugin_spec(
    kind: PluginKind,
    name: str,
    version: str,
    factory: Callable[[Dict[str, Any]], Any],
    description: str = "",
) -> PluginSpec:
    """Create a normalized plugin spec."""

    return PluginSpec(
        kind=kind,
        name=normalize_plugin_name(name),
        version=version,
        factory=factory,
        description=description,
    )
