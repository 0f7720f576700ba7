"""Tracked resource registry and change filtering."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from scrapwatch.core.errors import ConfigurationError
from scrapwatch.core.models import DetectedChange, ResourceChange

DEFAULT_TRACKED_APPS: dict[int, str] = {
    387990: "Scrap Mechanic",
    588870: "Scrap Mechanic Mod Tool",
}


class ResourceRegistry(Mapping[int, str]):
    """Read-only mapping of tracked resource id to display name."""

    def __init__(self, entries: Mapping[int, str] | None = None):
        source = DEFAULT_TRACKED_APPS if entries is None else entries
        normalized: dict[int, str] = {}
        for raw_id, name in source.items():
            try:
                resource_id = int(raw_id)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Tracked resource id must be an integer: {raw_id!r}") from exc
            if resource_id < 0:
                raise ConfigurationError(f"Tracked resource id must be unsigned: {resource_id}")
            normalized[resource_id] = str(name)
        self._entries = MappingProxyType(normalized)

    def __getitem__(self, resource_id: int) -> str:
        return self._entries[resource_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResourceRegistry({dict(self._entries)!r})"


def filter_changes(
    registry: Mapping[int, str],
    changes: Mapping[int, ResourceChange] | Iterable[ResourceChange],
) -> list[DetectedChange]:
    """Keep only changes to tracked resources, preserving enumeration order."""
    entries = changes.values() if isinstance(changes, Mapping) else changes
    return [
        DetectedChange(
            resource_id=change.resource_id,
            change_number=change.change_number,
            display_name=registry.get(change.resource_id),
        )
        for change in entries
        if change.resource_id in registry
    ]
