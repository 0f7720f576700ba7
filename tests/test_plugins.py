"""Tests for plugin registry and plugin spec behavior."""

from types import SimpleNamespace

import pytest

from scrapwatch.adapters.notifications.discord import DiscordWebhookChannel
from scrapwatch.adapters.notifications.revolt import RevoltChannel
from scrapwatch.plugins import (
    PluginKind,
    PluginNotFoundError,
    PluginRegistrationError,
    PluginRegistry,
    build_default_registry,
    make_plugin_spec,
)
from scrapwatch.plugins import registry as registry_module


def test_register_and_create_plugin():
    registry = PluginRegistry()

    def factory(config):
        return {"name": "demo-feed", "config": config}

    spec = make_plugin_spec(
        kind=PluginKind.FEED_CLIENT,
        name="Demo_Feed",
        version="0.1.0",
        factory=factory,
    )

    registry.register(spec)
    built = registry.create(PluginKind.FEED_CLIENT, "demo-feed", {"timeout": 30})

    assert built["name"] == "demo-feed"
    assert built["config"]["timeout"] == 30


def test_duplicate_registration_raises_error():
    registry = PluginRegistry()
    spec = make_plugin_spec(
        kind=PluginKind.NOTIFICATION_CHANNEL,
        name="discord",
        version="1.0.0",
        factory=lambda _config: object(),
    )

    registry.register(spec)

    with pytest.raises(PluginRegistrationError):
        registry.register(spec)


def test_create_missing_plugin_raises_error():
    registry = PluginRegistry()

    with pytest.raises(PluginNotFoundError):
        registry.create(PluginKind.FEED_CLIENT, "steam")


def test_names_are_filtered_by_kind():
    registry = PluginRegistry()
    registry.register_factory(
        kind=PluginKind.FEED_CLIENT,
        name="Steam",
        version="1.0.0",
        factory=lambda _config: object(),
    )
    registry.register_factory(
        kind=PluginKind.NOTIFICATION_CHANNEL,
        name="discord",
        version="1.0.0",
        factory=lambda _config: object(),
    )

    assert registry.names(PluginKind.FEED_CLIENT) == ["steam"]
    assert registry.names(PluginKind.NOTIFICATION_CHANNEL) == ["discord"]


def test_default_registry_builds_builtin_destinations():
    registry = build_default_registry(load_entrypoints=False)

    names = registry.names(PluginKind.NOTIFICATION_CHANNEL)
    discord = registry.create(
        PluginKind.NOTIFICATION_CHANNEL,
        "Discord",
        {"token": "https://discord.com/api/webhooks/1/abc", "label": "discord#1"},
    )
    revolt = registry.create(
        PluginKind.NOTIFICATION_CHANNEL,
        "revolt",
        {"token": "bot", "revolt_chat": "01CHAN"},
    )

    assert names == ["discord", "revolt", "slack"]
    assert isinstance(discord, DiscordWebhookChannel)
    assert discord.destination_id == "discord#1"
    assert isinstance(revolt, RevoltChannel)
    assert revolt.channel_id == "01CHAN"


def test_entrypoint_plugins_loaded(monkeypatch):
    def contribute(registry):
        registry.register_factory(
            kind=PluginKind.FEED_CLIENT,
            name="steam",
            version="0.0.1",
            factory=lambda _config: "client",
        )

    class _EntryPoint:
        name = "steam"

        def load(self):
            return contribute

    class _Broken:
        name = "broken"

        def load(self):
            raise ImportError("missing dependency")

    monkeypatch.setattr(
        registry_module,
        "entry_points",
        lambda: SimpleNamespace(select=lambda group: [_EntryPoint(), _Broken()]),
    )
    registry = PluginRegistry()

    loaded = registry.load_entrypoint_plugins()

    assert loaded == 1
    assert registry.create(PluginKind.FEED_CLIENT, "steam") == "client"
